from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field
from enum import Enum
import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class ScenarioStatus(Enum):
    """Lifecycle of a single scenario run"""
    PENDING = "pending"
    RUNNING_BACKGROUND = "running_background"
    RUNNING_STEPS = "running_steps"
    PASSED = "passed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScenarioStatus.PASSED, ScenarioStatus.FAILED)


class StepStatus(Enum):
    """Outcome of a single step"""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNDEFINED = "undefined"


_TRANSITIONS = {
    ScenarioStatus.PENDING: {ScenarioStatus.RUNNING_BACKGROUND, ScenarioStatus.RUNNING_STEPS, ScenarioStatus.FAILED},
    ScenarioStatus.RUNNING_BACKGROUND: {ScenarioStatus.RUNNING_STEPS, ScenarioStatus.FAILED},
    ScenarioStatus.RUNNING_STEPS: {ScenarioStatus.PASSED, ScenarioStatus.FAILED},
}


@dataclass
class ScenarioRun:
    """Tracks one scenario through PENDING -> RUNNING_* -> PASSED/FAILED"""
    name: str
    tags: List[str] = field(default_factory=list)
    steps: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    _status: ScenarioStatus = field(default=ScenarioStatus.PENDING, repr=False)

    @property
    def status(self) -> ScenarioStatus:
        """Get current scenario status"""
        return self._status

    @status.setter
    def status(self, value: ScenarioStatus) -> None:
        """Move to a new status; terminal states are final"""
        if value not in _TRANSITIONS.get(self._status, set()):
            raise ValueError(f"Illegal scenario transition {self._status.value} -> {value.value}")
        logger.debug(f"Scenario '{self.name}': {self._status.value} -> {value.value}")
        self._status = value
        if value is not ScenarioStatus.PENDING and self.start_time is None:
            self.start_time = datetime.now()
        if value.is_terminal:
            self.end_time = datetime.now()

    def fail(self, error: BaseException) -> None:
        self.error = str(error)
        self.status = ScenarioStatus.FAILED

    @property
    def duration(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'tags': list(self.tags),
            'steps': self.steps,
            'status': self._status.value,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration': self.duration,
        }
        if self.error is not None:
            result['error'] = self.error
        return result
