"""Operation result models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..constants import AttemptOutcome, OperationKind, PipelineState, Stage
from .changes import TestUnitRecord
from .manifest import Manifest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CommandResult:
    """Outcome of one external command invocation"""

    command: List[str]
    returncode: int
    payload: Dict[str, Any] = field(default_factory=dict)
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def reason(self) -> str:
        """Get the failure reason reported by the command"""
        message = self.payload.get("message") if isinstance(self.payload, dict) else None
        if message:
            return str(message)
        if self.stderr.strip():
            return self.stderr.strip().splitlines()[-1]
        return f"exit status {self.returncode}"


@dataclass
class DeployAttempt:
    """One attempt of a remote operation"""

    operation: OperationKind
    attempt_number: int
    outcome: AttemptOutcome
    result_payload: Any = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "operation": self.operation.value,
            "attempt": self.attempt_number,
            "outcome": self.outcome.value,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class ExecutionReport:
    """Attempts made for a single retried operation"""

    operation: OperationKind
    attempts: List[DeployAttempt] = field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def retries(self) -> int:
        return max(self.attempt_count - 1, 0)

    @property
    def succeeded(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].succeeded

    @property
    def payload(self) -> Any:
        """Get the payload of the last attempt"""
        if not self.attempts:
            return None
        return self.attempts[-1].result_payload


@dataclass
class PipelineResult:
    """Result of a delta deployment run"""

    state: PipelineState = PipelineState.INIT
    failed_stage: Optional[Stage] = None
    error: Optional[Exception] = None
    noop_reason: Optional[str] = None
    dry_run: bool = False
    attempts: List[DeployAttempt] = field(default_factory=list)
    package_manifest: Optional[Manifest] = None
    destructive_manifest: Optional[Manifest] = None
    test_units: List[TestUnitRecord] = field(default_factory=list)
    skipped_commands: List[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def duration(self) -> Optional[float]:
        """Get run duration in seconds"""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def attempts_for(self, operation: OperationKind) -> List[DeployAttempt]:
        return [a for a in self.attempts if a.operation == operation]

    def complete(self) -> None:
        """Mark run as complete"""
        self.end_time = _utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "state": self.state.name,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error": str(self.error) if self.error else None,
            "noop_reason": self.noop_reason,
            "dry_run": self.dry_run,
            "attempts": [a.to_dict() for a in self.attempts],
            "package": self.package_manifest.to_dict() if self.package_manifest else {},
            "destructive": self.destructive_manifest.to_dict() if self.destructive_manifest else {},
            "test_units": [t.unit_name for t in self.test_units],
            "duration": self.duration,
        }
