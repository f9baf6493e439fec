"""
Value types passed through the conversion pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class FileEntry:
    filename: str
    content: bytes = field(repr=False)
    declared_size: int


@dataclass(frozen=True)
class ConversionRequest:
    """A validated batch: one format pair, one or more files.

    Instances come from ``select_files``; changing the selection means
    building a new request.
    """
    source_format: str
    target_format: str
    files: Tuple[FileEntry, ...]
    category: str = ""


@dataclass(frozen=True)
class ConversionResult:
    filename: str
    content: bytes = field(repr=False)
    content_type: str = "application/octet-stream"


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class JobStatus:
    id: str
    state: JobState
    progress: int = 0
    result: Optional[ConversionResult] = None
    error: Optional[str] = None


# Terminal outcomes of the polling loop

@dataclass(frozen=True)
class PollSuccess:
    status: JobStatus

    @property
    def result(self) -> Optional[ConversionResult]:
        return self.status.result


@dataclass(frozen=True)
class PollFailure:
    status: JobStatus
    message: str


@dataclass(frozen=True)
class PollTimedOut:
    job_id: str
    attempts: int
    last_error: Optional[Exception] = None


PollOutcome = Union[PollSuccess, PollFailure, PollTimedOut]
