import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from bsai.config import settings
from bsai.core.errors import PlatformError, get_error_message
from bsai.assessments.aggregation import round_half_up, summarize_verdicts
from bsai.assessments.jobs import Err, JobProbeError, JobReading, JobStatus, JobStatusProbe
from bsai.assessments.schemas import ComplianceSummary
from bsai.assessments.service import AssessmentService

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "An error occurred during AI analysis. Please try again."


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressSnapshot(BaseModel):
    """What a progress view renders for one assessment job."""

    assessment_id: Optional[str] = None
    state: PollerState = PollerState.IDLE
    status: str = "processing"
    progress: float = 0
    sub_progress: float = 0
    processed_count: int = 0
    total_count: int = 0
    stage_label: Optional[str] = None
    completed_batches: Optional[int] = None
    total_batches: Optional[int] = None
    ai_model: Optional[str] = None
    summary: Optional[ComplianceSummary] = None
    error: Optional[str] = None


Callback = Callable[[ProgressSnapshot], Union[None, Awaitable[None]]]


def stage_label(stage: Optional[str]) -> Optional[str]:
    """`extracting_requirements` -> `Extracting requirements`."""
    if not stage or not stage.strip():
        return None
    return stage.replace("_", " ").strip().capitalize()


class _Subscription:
    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id


class AssessmentJobPoller:
    """Follows one AI assessment job until it completes or fails.

    States: idle -> polling -> completed | failed, and back to idle on
    `unsubscribe()` or when a different assessment id is subscribed. Ticks are
    strictly sequential: the next status request is only scheduled once the
    previous one has settled. Every continuation checks that its subscription
    is still current, so a superseded assessment can never report progress or
    completion.
    """

    def __init__(
        self,
        service: AssessmentService,
        *,
        on_update: Optional[Callback] = None,
        on_complete: Optional[Callback] = None,
        interval: Optional[float] = None,
        completion_delay: Optional[float] = None,
        max_duration: Optional[float] = None,
        total_questions: Optional[int] = None,
    ):
        self.service = service
        self.probe = JobStatusProbe(service)
        self.on_update = on_update
        self.on_complete = on_complete
        self.interval = settings.JOB_POLL_INTERVAL_SECONDS if interval is None else interval
        self.completion_delay = (
            settings.COMPLETION_CLOSE_DELAY_SECONDS if completion_delay is None else completion_delay
        )
        self.max_duration = settings.JOB_POLL_MAX_DURATION_SECONDS if max_duration is None else max_duration
        self.total_questions = total_questions or settings.TOTAL_ASSESSMENT_QUESTIONS

        self._current: Optional[_Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._snapshot = ProgressSnapshot(total_count=self.total_questions)

    @property
    def snapshot(self) -> ProgressSnapshot:
        return self._snapshot

    @property
    def state(self) -> PollerState:
        return self._snapshot.state

    @property
    def assessment_id(self) -> Optional[str]:
        return self._current.assessment_id if self._current else None

    def subscribe(self, assessment_id: Optional[str], poll: bool = True) -> None:
        """Start following `assessment_id`; a falsy id or `poll=False` just stops polling."""
        if poll and self._current is not None and self._current.assessment_id == assessment_id:
            return

        self.unsubscribe()
        if not assessment_id or not poll:
            return

        sub = _Subscription(assessment_id)
        self._current = sub
        self._snapshot = ProgressSnapshot(
            assessment_id=assessment_id,
            state=PollerState.POLLING,
            total_count=self.total_questions,
        )
        self._task = asyncio.get_running_loop().create_task(self._run(sub))
        logger.info(f"Polling assessment job {assessment_id} every {self.interval}s")

    def unsubscribe(self) -> None:
        if self._current is not None:
            logger.info(f"Stopped following assessment job {self._current.assessment_id}")
        self._current = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._snapshot = ProgressSnapshot(total_count=self.total_questions)

    async def join(self) -> None:
        """Wait until the current subscription has finished (including the close delay)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def _is_current(self, sub: _Subscription) -> bool:
        return self._current is sub

    async def _run(self, sub: _Subscription) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_duration
        await self._load_model_name(sub)

        while self._is_current(sub):
            await asyncio.sleep(self.interval)
            if not self._is_current(sub):
                return
            if await self._tick(sub):
                break
            if loop.time() >= deadline:
                logger.error(f"Assessment job {sub.assessment_id} still running after {self.max_duration}s, giving up")
                await self._fail(sub, "The analysis is taking longer than expected. Please check back later.")
                break

        if self._is_current(sub) and self._snapshot.state == PollerState.COMPLETED:
            # Leave the success state on screen before handing control back.
            await asyncio.sleep(self.completion_delay)
            if self._is_current(sub) and self.on_complete is not None:
                await self._call(self.on_complete)

    async def _load_model_name(self, sub: _Subscription) -> None:
        try:
            assessment = await self.service.get_assessment(sub.assessment_id)
        except PlatformError as e:
            logger.warning(f"Could not load assessment {sub.assessment_id}: {e}")
            return
        if self._is_current(sub) and assessment.ai_model:
            await self._update(sub, ai_model=assessment.ai_model)

    async def _tick(self, sub: _Subscription) -> bool:
        """One status read. Returns True once the job reached a terminal state."""
        result = await self.probe.read(sub.assessment_id)
        if not self._is_current(sub):
            return True

        if isinstance(result, Err):
            error = result.error
            if isinstance(error, JobProbeError) and error.unrecoverable:
                logger.error(f"Assessment job {sub.assessment_id} status unreadable: {error}")
                await self._fail(sub, get_error_message(error))
                return True
            logger.warning(f"Transient status failure for {sub.assessment_id}, retrying next tick: {error}")
            return False

        reading = result.value
        if reading.status == JobStatus.FAILED:
            logger.error(f"Assessment job {sub.assessment_id} failed: {reading.error_message}")
            await self._fail(sub, reading.error_message or DEFAULT_FAILURE_MESSAGE)
            return True
        if reading.status == JobStatus.COMPLETED and reading.is_complete:
            return await self._complete(sub, reading)

        await self._advance(sub, reading)
        return False

    async def _advance(self, sub: _Subscription, reading: JobReading) -> None:
        previous = self._snapshot
        progress = previous.progress
        if reading.progress_percent is not None:
            progress = max(progress, min(100.0, max(0.0, reading.progress_percent)))
        # Question counts reported by the legacy endpoint win over the estimate.
        total = reading.total_count or previous.total_count
        if reading.processed_count is not None:
            processed = max(previous.processed_count, min(reading.processed_count, total))
        else:
            processed = round_half_up(progress / 100 * total)
        await self._update(
            sub,
            status=JobStatus.PROCESSING.value,
            progress=progress,
            sub_progress=progress,
            processed_count=processed,
            total_count=total,
            stage_label=stage_label(reading.stage) or previous.stage_label,
            completed_batches=reading.completed_batches
            if reading.completed_batches is not None
            else previous.completed_batches,
            total_batches=reading.total_batches if reading.total_batches is not None else previous.total_batches,
        )

    async def _complete(self, sub: _Subscription, reading: JobReading) -> bool:
        try:
            report = await self.service.get_report(sub.assessment_id)
        except PlatformError as e:
            logger.warning(f"Job {sub.assessment_id} completed but report fetch failed, retrying: {e}")
            return False
        if not self._is_current(sub):
            return True

        responses = report.flat_responses()
        total = len(responses) or self._snapshot.total_count
        await self._update(
            sub,
            state=PollerState.COMPLETED,
            status=JobStatus.COMPLETED.value,
            progress=100,
            sub_progress=100,
            processed_count=total,
            total_count=total,
            summary=summarize_verdicts(responses),
        )
        logger.info(f"Assessment {sub.assessment_id} completed via {reading.source} status ({len(responses)} responses)")
        return True

    async def _fail(self, sub: _Subscription, message: str) -> None:
        await self._update(sub, state=PollerState.FAILED, status=JobStatus.FAILED.value, error=message)

    async def _update(self, sub: _Subscription, **changes: Any) -> None:
        if not self._is_current(sub):
            return
        self._snapshot = self._snapshot.model_copy(update=changes)
        if self.on_update is not None:
            await self._call(self.on_update)

    async def _call(self, callback: Callback) -> None:
        try:
            result = callback(self._snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Progress callback failed for {self.assessment_id}")
