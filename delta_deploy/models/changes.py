"""Revision and changed-file models"""

from dataclasses import dataclass
from typing import Optional

from ..constants import DetectionReason, FilePresence


@dataclass(frozen=True)
class RevisionPair:
    """Start and end revision of a delta"""
    start: str
    end: str

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


@dataclass(frozen=True)
class ChangedFile:
    """A path that differs between two revisions"""
    path: str  # Repository-relative, forward slashes
    presence: FilePresence

    @property
    def is_deleted(self) -> bool:
        return self.presence == FilePresence.DELETED


@dataclass(frozen=True)
class TestUnitRecord:
    """A source file recognized as a test unit"""
    unit_name: str
    reason: DetectionReason
    source_path: Optional[str] = None
    pattern: Optional[str] = None  # Set when reason is PATTERN

    # Keep pytest from collecting this class
    __test__ = False

    def describe(self) -> str:
        """Get a human-readable detection reason"""
        if self.reason == DetectionReason.PATTERN:
            return f"Matches pattern {self.pattern}"
        return "Contains @isTest annotation"
