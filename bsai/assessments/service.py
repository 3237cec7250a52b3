import logging
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from bsai.client import ApiClient
from bsai.core.errors import ResponseShapeError
from bsai.assessments.schemas import (
    ActiveJobs,
    Assessment,
    AssessmentReport,
    AssessmentResponse,
    ConsultantReviewUpdate,
    DashboardCounters,
    HumanReview,
    Job,
    JobStatusResponse,
    LegacyProgress,
    StartJobResponse,
)
from bsai.documents.schemas import DocumentCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_payload(schema: Type[T], payload: Any) -> T:
    """Validate a platform payload, raising ResponseShapeError on mismatch."""
    try:
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return schema.model_validate(payload)
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as e:
        raise ResponseShapeError(f"Unexpected {getattr(schema, '__name__', schema)} payload: {e}") from e


class AssessmentService:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_categories(self) -> List[DocumentCategory]:
        data = await self.client.get("/assessments/categories")
        return parse_payload(List[DocumentCategory], data)

    async def create_assessment(self, document_id: str, assessment_type: str = "manual") -> Assessment:
        data = await self.client.post(
            "/assessments",
            json={"document_id": document_id, "assessment_type": assessment_type},
        )
        return parse_payload(Assessment, data)

    async def get_assessment(self, assessment_id: str) -> Assessment:
        data = await self.client.get(f"/assessments/{assessment_id}")
        return parse_payload(Assessment, data)

    async def get_document_assessments(self, document_id: str) -> List[Assessment]:
        data = await self.client.get(f"/assessments/document/{document_id}")
        return parse_payload(List[Assessment], data or [])

    async def get_report(self, assessment_id: str) -> AssessmentReport:
        data = await self.client.get(f"/assessments/{assessment_id}/report")
        return parse_payload(AssessmentReport, data)

    async def get_assessment_responses(self, assessment_id: str) -> List[AssessmentResponse]:
        """Report responses without their question/section context."""
        report = await self.get_report(assessment_id)
        return report.flat_responses()

    async def get_markdown_report(self, assessment_id: str) -> str:
        return await self.client.get(f"/assessments/{assessment_id}/report/markdown")

    async def complete_assessment(self, assessment_id: str) -> Assessment:
        data = await self.client.post(f"/assessments/{assessment_id}/complete")
        return parse_payload(Assessment, data)

    async def start_assessment_job(self, assessment_id: str) -> StartJobResponse:
        data = await self.client.post(f"/assessments/{assessment_id}/start")
        logger.info(f"Started AI assessment job for {assessment_id}")
        return parse_payload(StartJobResponse, data)

    async def get_job_status(self, assessment_id: str) -> JobStatusResponse:
        data = await self.client.get(f"/assessments/{assessment_id}/job")
        return parse_payload(JobStatusResponse, data)

    async def get_progress(self, assessment_id: str) -> LegacyProgress:
        """First-generation progress endpoint, kept as the poller's fallback."""
        data = await self.client.get(f"/assessments/{assessment_id}/progress")
        return parse_payload(LegacyProgress, data)

    async def get_active_jobs(self) -> List[Job]:
        data = await self.client.get("/assessments/jobs/active")
        return parse_payload(ActiveJobs, data or {}).active_jobs

    async def update_consultant_review(
        self, assessment_id: str, response_id: str, update: ConsultantReviewUpdate
    ) -> Optional[dict]:
        return await self.client.patch(
            f"/assessments/{assessment_id}/responses/{response_id}/consultant-review",
            json=update.model_dump(),
        )

    async def get_human_review(self, assessment_id: str) -> HumanReview:
        data = await self.client.get(f"/assessments/{assessment_id}/human-review")
        return parse_payload(HumanReview, data or {})

    async def save_human_review(self, assessment_id: str, content: str) -> Any:
        return await self.client.post(
            f"/assessments/{assessment_id}/human-review",
            json={"human_review": content},
        )

    async def get_dashboard_counters(self) -> DashboardCounters:
        data = await self.client.get("/assessments/dashboard/counters")
        return parse_payload(DashboardCounters, data)
