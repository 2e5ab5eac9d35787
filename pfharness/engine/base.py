from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from pfharness.model import JobStatusRecord, SubmissionRequest


class JobEngine(ABC):
	"""Job-execution engine as seen by the harness."""

	name = "abstract"

	@abstractmethod
	def submit(self, request: SubmissionRequest) -> str:
		"""Start one job after its requested delay and return an execution handle."""
		raise NotImplementedError

	@abstractmethod
	def list_status(self, id_prefix: str) -> List[JobStatusRecord]:
		"""Status of every job whose id starts with the prefix, in no particular order."""
		raise NotImplementedError

	def close(self) -> None:
		return None
