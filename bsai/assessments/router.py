from typing import List
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from bsai.auth.dependencies import get_assessment_service
from bsai.core.errors import ApiError, ConsultantReviewError, PlatformError
from bsai.core.websockets.manager import rooms
from bsai.assessments.aggregation import summarize
from bsai.assessments.review import ConsultantReviewOverlay
from bsai.assessments.schemas import (
    Assessment,
    AssessmentCreate,
    AssessmentResponse,
    AssessmentStarted,
    ComplianceSummary,
    ConsultantDecisionRequest,
    DashboardCounters,
    HumanReview,
    HumanReviewUpdate,
    Job,
    ScoringMode,
    StartJobResponse,
)
from bsai.assessments.service import AssessmentService

router = APIRouter(prefix="/assessments", tags=["assessments"])


def _http_error(e: PlatformError) -> HTTPException:
    if isinstance(e, ApiError) and e.status_code in (401, 403, 404):
        return HTTPException(status_code=e.status_code, detail=e.message)
    return HTTPException(status_code=502, detail=e.message)


@router.get("/{assessment_id}/summary", response_model=ComplianceSummary)
async def get_compliance_summary(
    assessment_id: str,
    mode: ScoringMode = ScoringMode.VERDICT,
    include_non_relevant: bool = False,
    service: AssessmentService = Depends(get_assessment_service),
):
    """Scores and verdict tallies for one assessment, computed the same way every screen does."""
    try:
        responses = await service.get_assessment_responses(assessment_id)
    except PlatformError as e:
        raise _http_error(e)
    return summarize(responses, mode, include_non_relevant)


@router.patch(
    "/{assessment_id}/responses/{response_id}/consultant-review",
    response_model=AssessmentResponse,
)
async def set_consultant_review(
    assessment_id: str,
    response_id: str,
    request: ConsultantDecisionRequest,
    service: AssessmentService = Depends(get_assessment_service),
):
    try:
        overlay = await ConsultantReviewOverlay.load(service, assessment_id)
        response = await overlay.set_consultant_decision(response_id, request.decision, request.notes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsultantReviewError as e:
        raise HTTPException(status_code=502, detail=e.message)
    except PlatformError as e:
        raise _http_error(e)

    await rooms.broadcast_json(
        {"type": "consultant_review", "response": response.model_dump(mode="json")},
        assessment_id,
    )
    return response


@router.post("", response_model=AssessmentStarted, status_code=201)
async def create_assessment(
    request: AssessmentCreate,
    service: AssessmentService = Depends(get_assessment_service),
):
    """Create an assessment for a document and, for AI assessments, queue its job."""
    assessment = await service.create_assessment(request.document_id, request.assessment_type)
    job = None
    if request.start and request.assessment_type == "ai":
        job = await service.start_assessment_job(assessment.id)
    return AssessmentStarted(assessment=assessment, job=job)


@router.get("/jobs/active", response_model=List[Job])
async def list_active_jobs(service: AssessmentService = Depends(get_assessment_service)):
    return await service.get_active_jobs()


@router.get("/dashboard/counters", response_model=DashboardCounters)
async def dashboard_counters(service: AssessmentService = Depends(get_assessment_service)):
    return await service.get_dashboard_counters()


@router.post("/{assessment_id}/start", response_model=StartJobResponse)
async def start_assessment_job(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
):
    return await service.start_assessment_job(assessment_id)


@router.post("/{assessment_id}/complete", response_model=Assessment)
async def complete_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
):
    return await service.complete_assessment(assessment_id)


@router.get("/{assessment_id}/report/markdown", response_class=PlainTextResponse)
async def markdown_report(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
):
    return await service.get_markdown_report(assessment_id)


@router.get("/{assessment_id}/human-review", response_model=HumanReview)
async def get_human_review(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
):
    return await service.get_human_review(assessment_id)


@router.put("/{assessment_id}/human-review", response_model=HumanReview)
async def save_human_review(
    assessment_id: str,
    request: HumanReviewUpdate,
    service: AssessmentService = Depends(get_assessment_service),
):
    await service.save_human_review(assessment_id, request.content)
    return HumanReview(content=request.content)
