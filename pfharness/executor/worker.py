"""Entrypoint of the worker container: wait for the start delay, run the steps,
and publish progress on the pod's own annotations."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from pfharness.executor.pod_gen import ANNOTATION_ATTRIBUTES
from pfharness.executor.steps import DEFAULT_STEP_DURATION_MS, run_steps
from pfharness.model import ATTR_ACTIVITIES_COMPLETED, safe_int

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Patches ActivitiesCompleted into the pod's search-attribute annotation."""

    def __init__(self, core: client.CoreV1Api, pod_name: str, namespace: str) -> None:
        self.core = core
        self.pod_name = pod_name
        self.namespace = namespace

    def _current_attributes(self) -> Dict[str, Any]:
        pod = self.core.read_namespaced_pod(self.pod_name, self.namespace)
        raw = (pod.metadata.annotations or {}).get(ANNOTATION_ATTRIBUTES) or "{}"
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Pod {self.pod_name} has unreadable attributes annotation, resetting")
            return {}

    def report(self, step_number: int) -> None:
        try:
            attrs = self._current_attributes()
            attrs[ATTR_ACTIVITIES_COMPLETED] = step_number
            body = {"metadata": {"annotations": {ANNOTATION_ATTRIBUTES: json.dumps(attrs, sort_keys=True)}}}
            self.core.patch_namespaced_pod(self.pod_name, self.namespace, body)
        except ApiException as e:
            # Progress is best effort; the step itself already completed.
            logger.error(f"Failed to report step {step_number} for {self.pod_name}: status={e.status}, reason={e.reason}")


def _load_core_api() -> client.CoreV1Api:
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    return client.CoreV1Api()


def main() -> None:
    logging.basicConfig(level=os.getenv("PF_LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    job_id = os.environ["JOB_ID"]
    delay_ms = safe_int(os.getenv("START_DELAY_MS"), 0) or 0
    step_ms = safe_int(os.getenv("STEP_DURATION_MS"), DEFAULT_STEP_DURATION_MS)

    reporter = ProgressReporter(
        _load_core_api(),
        pod_name=os.environ["POD_NAME"],
        namespace=os.getenv("POD_NAMESPACE", "pf-harness"),
    )

    if delay_ms > 0:
        logger.info(f"{job_id}: waiting {delay_ms}ms before start")
        time.sleep(delay_ms / 1000.0)

    results = run_steps(job_id, duration_ms=step_ms, on_step=reporter.report)
    for line in results:
        logger.info(f"{job_id}: {line}")


if __name__ == "__main__":
    main()
