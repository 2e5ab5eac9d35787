"""Code that runs a synthetic job: the step body, pod generation and the pod worker."""
