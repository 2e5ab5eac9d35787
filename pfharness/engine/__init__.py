"""Job-execution engine adapters.

- base: the contract the launcher and status endpoints depend on
- local: in-process engine running jobs on a thread pool
- kubernetes: one worker pod per job
"""

from pfharness.engine.base import JobEngine

__all__ = ["JobEngine"]
