from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pfharness.errors import ConfigError

STEPS_PER_JOB = 5
PRIORITY_LEVELS = 5

DEFAULT_ID_PREFIX = "Testing"
DEFAULT_JOB_COUNT = 100

# Search attribute names shared with the execution engine
ATTR_PRIORITY = "Priority"
ATTR_FAIRNESS_KEY = "FairnessKey"
ATTR_FAIRNESS_WEIGHT = "FairnessWeight"
ATTR_ACTIVITIES_COMPLETED = "ActivitiesCompleted"


class Mode(str, Enum):
        PRIORITY = "priority"
        FAIRNESS = "fairness"

        @classmethod
        def parse(cls, raw: Any) -> "Mode":
                """Anything other than "fairness" means priority mode."""
                if isinstance(raw, Mode):
                        return raw
                if isinstance(raw, str) and raw.strip().lower() == cls.FAIRNESS.value:
                        return cls.FAIRNESS
                return cls.PRIORITY


def safe_int(x: Any, default: Optional[int] = None) -> Optional[int]:
        if x is None or isinstance(x, bool):
                return default
        try:
                return int(str(x).strip().strip('"'))
        except (TypeError, ValueError):
                try:
                        return int(float(str(x).strip().strip('"')))
                except (TypeError, ValueError):
                        return default


def _require_int(payload: Mapping[str, Any], name: str, default: Optional[int]) -> Optional[int]:
        raw = payload.get(name)
        if raw is None:
                return default
        value = safe_int(raw)
        if value is None:
                raise ConfigError(f"'{name}' must be an integer, got {raw!r}")
        if value < 0:
                raise ConfigError(f"'{name}' must be >= 0, got {value}")
        return value


def _require_bool(payload: Mapping[str, Any], name: str, default: bool) -> bool:
        """JSON booleans, or the strings "true"/"false" in any case."""
        raw = payload.get(name)
        if raw is None:
                return default
        if isinstance(raw, bool):
                return raw
        if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
                return raw.strip().lower() == "true"
        raise ConfigError(f"'{name}' must be a boolean, got {raw!r}")


@dataclass
class Band:
        key: str
        weight: int = 0
        count: Optional[int] = None

        @classmethod
        def from_dict(cls, payload: Mapping[str, Any]) -> "Band":
                if not isinstance(payload, Mapping):
                        raise ConfigError(f"band must be an object, got {payload!r}")
                key = payload.get("key")
                if not isinstance(key, str) or not key.strip():
                        raise ConfigError("band 'key' must be a non-empty string")
                return cls(
                        key=key,
                        weight=_require_int(payload, "weight", 0),
                        count=_require_int(payload, "count", None),
                )

        def to_dict(self) -> Dict[str, Any]:
                data: Dict[str, Any] = {"key": self.key, "weight": self.weight}
                if self.count is not None:
                        data["count"] = self.count
                return data


DEFAULT_BANDS = (
        Band(key="first-class", weight=15),
        Band(key="business-class", weight=5),
        Band(key="economy-class", weight=1),
)


@dataclass
class RunConfig:
        id_prefix: str = DEFAULT_ID_PREFIX
        job_count: int = DEFAULT_JOB_COUNT
        mode: Mode = Mode.PRIORITY
        bands: List[Band] = field(default_factory=list)
        disable_fairness: bool = False

        @classmethod
        def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "RunConfig":
                """Parse the wire payload of a start request. None yields the default run."""
                if payload is None:
                        return cls()
                if not isinstance(payload, Mapping):
                        raise ConfigError("run config must be a JSON object")

                prefix = payload.get("workflowIdPrefix")
                if prefix is None or (isinstance(prefix, str) and not prefix.strip()):
                        prefix = DEFAULT_ID_PREFIX
                if not isinstance(prefix, str):
                        raise ConfigError("'workflowIdPrefix' must be a string")

                raw_bands = payload.get("bands") or []
                if not isinstance(raw_bands, list):
                        raise ConfigError("'bands' must be a list")
                bands = [Band.from_dict(b) for b in raw_bands]
                seen = set()
                for band in bands:
                        if band.key in seen:
                                raise ConfigError(f"duplicate band key '{band.key}'")
                        seen.add(band.key)

                return cls(
                        id_prefix=prefix,
                        job_count=_require_int(payload, "numberOfWorkflows", DEFAULT_JOB_COUNT),
                        mode=Mode.parse(payload.get("mode")),
                        bands=bands,
                        disable_fairness=_require_bool(payload, "disableFairness", False),
                )

        def to_dict(self) -> Dict[str, Any]:
                return {
                        "workflowIdPrefix": self.id_prefix,
                        "numberOfWorkflows": self.job_count,
                        "mode": self.mode.value,
                        "bands": [b.to_dict() for b in self.bands],
                        "disableFairness": self.disable_fairness,
                }


@dataclass(frozen=True)
class PriorityClass:
        priority: int

        @property
        def key(self) -> int:
                return self.priority

        @property
        def weight(self) -> int:
                return 0


@dataclass(frozen=True)
class FairnessClass:
        fairness_key: str
        fairness_weight: int

        @property
        def key(self) -> str:
                return self.fairness_key

        @property
        def weight(self) -> int:
                return self.fairness_weight


Classification = Union[PriorityClass, FairnessClass]


@dataclass(frozen=True)
class JobPlanEntry:
        ordinal: int  # 1-based submission position
        job_id: str
        classification: Classification
        start_delay_s: float


@dataclass(frozen=True)
class PriorityJobData:
        priority: int


@dataclass(frozen=True)
class FairnessJobData:
        fairness_key: str
        fairness_weight: int
        disable_fairness: bool = False


@dataclass(frozen=True)
class SubmissionRequest:
        """One job submission: a tagged union over the two job kinds."""
        job_id: str
        kind: Mode
        payload: Union[PriorityJobData, FairnessJobData]
        start_delay_s: float
        task_queue: str

        def search_attributes(self) -> Dict[str, Any]:
                if self.kind is Mode.PRIORITY:
                        return {
                                ATTR_PRIORITY: self.payload.priority,
                                ATTR_ACTIVITIES_COMPLETED: 0,
                        }
                weight = 0 if self.payload.disable_fairness else self.payload.fairness_weight
                return {
                        ATTR_FAIRNESS_KEY: self.payload.fairness_key,
                        ATTR_FAIRNESS_WEIGHT: weight,
                        ATTR_ACTIVITIES_COMPLETED: 0,
                }


@dataclass
class JobStatusRecord:
        job_id: str
        priority: Optional[int] = None
        fairness_key: Optional[str] = None
        fairness_weight: Optional[int] = None
        completed_steps: Optional[int] = None

        @classmethod
        def from_attributes(cls, job_id: str, attrs: Mapping[str, Any]) -> "JobStatusRecord":
                """Build a record from engine search attributes, tolerating gaps."""
                key = attrs.get(ATTR_FAIRNESS_KEY)
                return cls(
                        job_id=job_id,
                        priority=safe_int(attrs.get(ATTR_PRIORITY)),
                        fairness_key=None if key is None else str(key).strip('"'),
                        fairness_weight=safe_int(attrs.get(ATTR_FAIRNESS_WEIGHT)),
                        completed_steps=safe_int(attrs.get(ATTR_ACTIVITIES_COMPLETED)),
                )


@dataclass
class ActivitySummary:
        step_number: int
        number_completed: int = 0

        def to_dict(self) -> Dict[str, int]:
                return {"activityNumber": self.step_number, "numberCompleted": self.number_completed}


@dataclass
class ClassificationSummary:
        key: Optional[Union[int, str]]
        weight: int = 0
        job_count: int = 0
        activities: List[ActivitySummary] = field(default_factory=list)

        def to_dict(self, mode: Mode) -> Dict[str, Any]:
                activities = [a.to_dict() for a in self.activities]
                if mode is Mode.PRIORITY:
                        return {
                                "workflowPriority": self.key,
                                "numberOfWorkflows": self.job_count,
                                "activities": activities,
                        }
                return {
                        "fairnessKey": self.key,
                        "fairnessWeight": self.weight,
                        "numberOfWorkflows": self.job_count,
                        "activities": activities,
                }


@dataclass
class RunResults:
        mode: Mode
        total_jobs: int
        summaries: List[ClassificationSummary] = field(default_factory=list)
        invalid: Optional[ClassificationSummary] = None

        def to_dict(self) -> Dict[str, Any]:
                list_name = "workflowsByPriority" if self.mode is Mode.PRIORITY else "workflowsByFairness"
                data: Dict[str, Any] = {
                        list_name: [s.to_dict(self.mode) for s in self.summaries],
                        "totalWorkflowsInTest": self.total_jobs,
                }
                if self.invalid is not None:
                        data["invalidPriority"] = self.invalid.to_dict(self.mode)
                return data
