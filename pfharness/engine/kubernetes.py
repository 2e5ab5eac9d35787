"""Kubernetes engine: one worker pod per job."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from pfharness.engine.base import JobEngine
from pfharness.errors import EngineError
from pfharness.executor.pod_gen import (
    ANNOTATION_ATTRIBUTES,
    ANNOTATION_JOB_ID,
    APP_LABEL,
    generate_pod_from_request,
)
from pfharness.model import JobStatusRecord, SubmissionRequest

logger = logging.getLogger(__name__)


class KubernetesJobEngine(JobEngine):
    """Submits jobs as pods and reads their progress back from pod annotations."""

    name = "kubernetes"

    def __init__(
        self,
        namespace: str = "pf-harness",
        image: str = "pfharness/worker:latest",
        step_duration_ms: int = 300,
        core_api: Optional[client.CoreV1Api] = None,
        page_size: int = 500,
    ) -> None:
        """
        Initialize the engine with a Kubernetes client.

        Args:
            namespace: Namespace that holds the worker pods
            image: Worker container image
            step_duration_ms: Pause of every job step
            core_api: Preconfigured CoreV1Api; loaded from the environment when omitted
            page_size: Pods fetched per list call
        """
        self.namespace = namespace
        self.image = image
        self.step_duration_ms = step_duration_ms
        self.page_size = page_size

        if core_api is None:
            try:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes config")
            except config.ConfigException:
                try:
                    config.load_kube_config()
                    logger.info("Loaded kubeconfig")
                except Exception as e:
                    logger.warning(f"Could not load Kubernetes config: {e}")
            core_api = client.CoreV1Api()
        self.core = core_api

    def submit(self, request: SubmissionRequest) -> str:
        pod = generate_pod_from_request(
            request,
            namespace=self.namespace,
            image=self.image,
            step_duration_ms=self.step_duration_ms,
        )
        try:
            created = self.core.create_namespaced_pod(namespace=self.namespace, body=pod)
        except ApiException as e:
            raise EngineError(
                f"Failed to create pod for {request.job_id}: status={e.status}, reason={e.reason}"
            ) from e
        logger.debug(f"Created pod {created.metadata.name} for {request.job_id}")
        return created.metadata.uid or created.metadata.name

    def _list_pods(self) -> List[Any]:
        pods: List[Any] = []
        token: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = {"label_selector": f"app={APP_LABEL}", "limit": self.page_size}
            if token:
                kwargs["_continue"] = token
            try:
                page = self.core.list_namespaced_pod(self.namespace, **kwargs)
            except ApiException as e:
                raise EngineError(f"Failed to list pods: status={e.status}, reason={e.reason}") from e
            pods.extend(page.items or [])
            token = getattr(page.metadata, "_continue", None) if page.metadata else None
            if not token:
                return pods

    def list_status(self, id_prefix: str) -> List[JobStatusRecord]:
        records: List[JobStatusRecord] = []
        for pod in self._list_pods():
            annotations = (pod.metadata.annotations or {}) if pod.metadata else {}
            job_id = annotations.get(ANNOTATION_JOB_ID)
            if not job_id or not job_id.startswith(id_prefix):
                continue
            try:
                attrs = json.loads(annotations.get(ANNOTATION_ATTRIBUTES) or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Pod {pod.metadata.name} has unreadable attributes annotation")
                attrs = {}
            if not isinstance(attrs, dict):
                attrs = {}
            records.append(JobStatusRecord.from_attributes(job_id, attrs))
        return records
