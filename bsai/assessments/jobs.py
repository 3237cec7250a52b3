"""Reading AI assessment job status from either generation of the platform API.

The job endpoint (``/assessments/{id}/job``) speaks the provider vocabulary
(``Queued``/``Processing``/``Completed``/``Failed``); the legacy progress
endpoint speaks assessment statuses (``processing``/``completed``/...).
Both are normalised into a `JobReading` so callers never see which one
answered.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, Optional, TypeVar, Union

from bsai.core.errors import AuthenticationError, PlatformError, ResponseShapeError
from bsai.assessments.schemas import JobStatusResponse, LegacyProgress, ProgressCounts
from bsai.assessments.service import AssessmentService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


PROVIDER_STATUS: Dict[str, JobStatus] = {
    "Queued": JobStatus.PROCESSING,
    "Processing": JobStatus.PROCESSING,
    "Completed": JobStatus.COMPLETED,
    "Failed": JobStatus.FAILED,
}

LEGACY_STATUS: Dict[str, JobStatus] = {
    "completed": JobStatus.COMPLETED,
    "reviewed": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
}


def to_internal_status(provider_status: Optional[str]) -> JobStatus:
    """Provider job status -> internal status. Anything unrecognised is still running."""
    return PROVIDER_STATUS.get(provider_status or "", JobStatus.PROCESSING)


def legacy_to_internal_status(assessment_status: Optional[str]) -> JobStatus:
    return LEGACY_STATUS.get(assessment_status or "", JobStatus.PROCESSING)


@dataclass(frozen=True)
class JobReading:
    status: JobStatus
    is_complete: bool
    progress_percent: Optional[float] = None
    stage: Optional[str] = None
    completed_batches: Optional[int] = None
    total_batches: Optional[int] = None
    error_message: Optional[str] = None
    processed_count: Optional[int] = None
    total_count: Optional[int] = None
    source: str = "job"

    @classmethod
    def from_job_status(cls, payload: JobStatusResponse) -> "JobReading":
        job = payload.job
        return cls(
            status=to_internal_status(job.status),
            is_complete=payload.is_complete,
            progress_percent=job.progress_percent,
            stage=job.progress_stage,
            completed_batches=job.completed_batches,
            total_batches=job.total_batches,
            error_message=job.error_message,
            source="job",
        )

    @classmethod
    def from_legacy(cls, payload: LegacyProgress) -> "JobReading":
        status = legacy_to_internal_status(payload.status)
        counts = payload.progress or ProgressCounts()
        return cls(
            status=status,
            is_complete=status == JobStatus.COMPLETED,
            progress_percent=counts.percentage,
            processed_count=counts.current,
            total_count=counts.total,
            source="legacy",
        )


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: Exception


Result = Union[Ok[T], Err]


class JobProbeError(PlatformError):
    """Neither status endpoint produced a usable reading this tick."""

    def __init__(self, primary: Exception, fallback: Exception):
        super().__init__(f"Job status unavailable (job: {primary}; progress: {fallback})")
        self.primary = primary
        self.fallback = fallback

    @property
    def unrecoverable(self) -> bool:
        fatal = (ResponseShapeError, AuthenticationError)
        return isinstance(self.primary, fatal) and isinstance(self.fallback, fatal)


class JobStatusProbe:
    """Two-step status read: job endpoint first, legacy progress only when it fails."""

    def __init__(self, service: AssessmentService):
        self.service = service

    async def try_primary(self, assessment_id: str) -> Result[JobReading]:
        try:
            payload = await self.service.get_job_status(assessment_id)
        except PlatformError as e:
            return Err(e)
        return Ok(JobReading.from_job_status(payload))

    async def try_fallback(self, assessment_id: str) -> Result[JobReading]:
        try:
            payload = await self.service.get_progress(assessment_id)
        except PlatformError as e:
            return Err(e)
        return Ok(JobReading.from_legacy(payload))

    async def read(self, assessment_id: str) -> Result[JobReading]:
        primary = await self.try_primary(assessment_id)
        if isinstance(primary, Ok):
            return primary

        logger.warning(f"Job status failed for {assessment_id}, falling back to legacy progress: {primary.error}")
        fallback = await self.try_fallback(assessment_id)
        if isinstance(fallback, Ok):
            return fallback
        return Err(JobProbeError(primary.error, fallback.error))
