"""Generate Kubernetes V1Pod objects from submission requests."""

from __future__ import annotations

import hashlib
import json
import re

from kubernetes.client import V1Container, V1EnvVar, V1ObjectMeta, V1Pod, V1PodSpec, V1ResourceRequirements

from pfharness.model import Mode, SubmissionRequest

APP_LABEL = "pf-worker"
LABEL_MODE = "pfharness/mode"
ANNOTATION_JOB_ID = "pfharness/job-id"
ANNOTATION_TASK_QUEUE = "pfharness/task-queue"
ANNOTATION_ATTRIBUTES = "pfharness/search-attributes"

_DNS_INVALID = re.compile(r"[^a-z0-9-]+")
MAX_NAME_LEN = 63
_DIGEST_LEN = 10


def pod_name_for(job_id: str) -> str:
    """DNS-1123 pod name for a job id ("Run-A-12" -> "pf-run-a-12").

    Ids too long for a pod name are cut and suffixed with a digest of the
    full id, so jobs of a run with a long prefix still get distinct names.
    """
    name = "pf-" + _DNS_INVALID.sub("-", job_id.lower()).strip("-")
    if len(name) <= MAX_NAME_LEN:
        return name.rstrip("-")
    digest = hashlib.sha1(job_id.encode("utf-8")).hexdigest()[:_DIGEST_LEN]
    head = name[:MAX_NAME_LEN - _DIGEST_LEN - 1].rstrip("-")
    return f"{head}-{digest}"


def _get_resource_requirements(cpu_millis: int = 50, mem_mi: int = 64) -> V1ResourceRequirements:
    return V1ResourceRequirements(
        requests={"cpu": f"{cpu_millis}m", "memory": f"{mem_mi}Mi"},
        limits={"cpu": f"{cpu_millis * 2}m", "memory": f"{mem_mi * 2}Mi"},
    )


def _classification_env(request: SubmissionRequest) -> list:
    if request.kind is Mode.PRIORITY:
        return [V1EnvVar(name="PRIORITY", value=str(request.payload.priority))]
    return [
        V1EnvVar(name="FAIRNESS_KEY", value=request.payload.fairness_key),
        V1EnvVar(name="FAIRNESS_WEIGHT", value=str(request.payload.fairness_weight)),
        V1EnvVar(name="DISABLE_FAIRNESS", value="1" if request.payload.disable_fairness else "0"),
    ]


def generate_pod_from_request(
    request: SubmissionRequest,
    namespace: str = "pf-harness",
    image: str = "pfharness/worker:latest",
    step_duration_ms: int = 300,
) -> V1Pod:
    """
    Generate a V1Pod running one synthetic job.

    Args:
        request: Submission request carrying the job id, classification and delay
        namespace: Kubernetes namespace
        image: Worker container image
        step_duration_ms: Pause of every job step

    Returns:
        V1Pod object ready for creation
    """
    container = V1Container(
        name="worker",
        image=image,
        image_pull_policy="IfNotPresent",
        resources=_get_resource_requirements(),
        env=[
            V1EnvVar(name="JOB_ID", value=request.job_id),
            V1EnvVar(name="TASK_QUEUE", value=request.task_queue),
            V1EnvVar(name="START_DELAY_MS", value=str(int(request.start_delay_s * 1000))),
            V1EnvVar(name="STEP_DURATION_MS", value=str(step_duration_ms)),
            V1EnvVar(name="POD_NAMESPACE", value=namespace),
            V1EnvVar(name="POD_NAME", value=pod_name_for(request.job_id)),
        ] + _classification_env(request),
        command=["python", "-m", "pfharness.executor.worker"],
    )

    pod_metadata = V1ObjectMeta(
        name=pod_name_for(request.job_id),
        namespace=namespace,
        labels={
            "app": APP_LABEL,
            LABEL_MODE: request.kind.value,
        },
        annotations={
            ANNOTATION_JOB_ID: request.job_id,
            ANNOTATION_TASK_QUEUE: request.task_queue,
            ANNOTATION_ATTRIBUTES: json.dumps(request.search_attributes(), sort_keys=True),
        },
    )

    return V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=pod_metadata,
        spec=V1PodSpec(containers=[container], restart_policy="Never"),
    )
