from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Verdict(str, Enum):
    SATISFACTORY = "satisfactory"
    UNSATISFACTORY = "unsatisfactory"
    REQUIREMENT = "requirement"
    NOT_APPLICABLE = "not_applicable"


class ComplianceLevel(str, Enum):
    COMPLIANT = "compliant"
    PARTIALLY_COMPLIANT = "partially_compliant"
    NON_COMPLIANT = "non_compliant"


class AssessmentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REVIEWED = "reviewed"
    FAILED = "failed"


class ConsultantDecision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PENDING = "pending"

    @property
    def accepted(self) -> Optional[bool]:
        """Wire value of `consultant_accepted` for this decision."""
        return {
            ConsultantDecision.ACCEPTED: True,
            ConsultantDecision.REJECTED: False,
            ConsultantDecision.PENDING: None,
        }[self]

    @classmethod
    def from_accepted(cls, accepted: Optional[bool]) -> "ConsultantDecision":
        if accepted is True:
            return cls.ACCEPTED
        if accepted is False:
            return cls.REJECTED
        return cls.PENDING


def _coerce_enum(enum_cls, value):
    """Unknown vocabulary is treated as absent rather than rejected."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class AssessmentResponse(BaseModel):
    """One AI (or manual) answer to one assessment question."""

    id: str
    assessment_id: Optional[str] = None
    question_id: Optional[str] = None
    verdict: Optional[Verdict] = None
    compliance_level: Optional[ComplianceLevel] = None
    is_relevant: Optional[bool] = None
    consultant_accepted: Optional[bool] = None
    consultant_notes: Optional[str] = None
    comment: Optional[str] = None
    improvement_recommendation: Optional[str] = None
    evidence_reference: Optional[str] = None
    vector_context_summary: Optional[str] = None
    supporting_references: Optional[str] = None
    enhanced_evidence_reference: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("verdict", mode="before")
    @classmethod
    def _verdict(cls, value):
        return _coerce_enum(Verdict, value)

    @field_validator("compliance_level", mode="before")
    @classmethod
    def _compliance_level(cls, value):
        return _coerce_enum(ComplianceLevel, value)

    @property
    def relevant(self) -> bool:
        # Absent means relevant.
        return self.is_relevant is not False

    @property
    def consultant_decision(self) -> ConsultantDecision:
        return ConsultantDecision.from_accepted(self.consultant_accepted)


class Assessment(BaseModel):
    id: str
    document_id: Optional[str] = None
    project_id: Optional[str] = None
    assessment_type: Optional[str] = None
    status: Optional[str] = None
    ai_model: Optional[str] = None
    assessor_id: Optional[str] = None
    assessor_name: Optional[str] = None
    assessment_date: Optional[str] = None
    started_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ReportItem(BaseModel):
    response: Optional[AssessmentResponse] = None
    question: Optional[Dict[str, Any]] = None
    subsection: Optional[Dict[str, Any]] = None
    section: Optional[Dict[str, Any]] = None


class AssessmentReport(BaseModel):
    assessment: Optional[Assessment] = None
    document_name: Optional[str] = None
    category: Optional[str] = None
    responses: List[ReportItem] = []
    summary: Optional[Dict[str, Any]] = None

    def flat_responses(self) -> List[AssessmentResponse]:
        return [item.response for item in self.responses if item.response is not None]


class Job(BaseModel):
    id: Optional[str] = None
    assessment_id: Optional[str] = None
    status: str
    progress_stage: Optional[str] = None
    progress_percent: Optional[float] = None
    total_batches: Optional[int] = None
    completed_batches: Optional[int] = None
    error_message: Optional[str] = None
    error_details: Optional[Any] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None


class JobStatusResponse(BaseModel):
    job: Job
    is_active: bool = False
    is_complete: bool = False
    overall_progress: Optional[float] = None
    estimated_completion: Optional[str] = None
    progress_events: List[Dict[str, Any]] = []


class ActiveJobs(BaseModel):
    active_jobs: List[Job] = []


class StartJobResponse(BaseModel):
    success: bool = True
    job_id: str
    assessment_id: str
    status: str
    estimated_duration_minutes: Optional[float] = None
    message: Optional[str] = None


class ProgressCounts(BaseModel):
    current: Optional[int] = None
    total: Optional[int] = None
    percentage: Optional[float] = None


class LegacyProgress(BaseModel):
    """Payload of the first-generation `/assessments/{id}/progress` endpoint."""

    status: Optional[str] = None
    progress: Optional[ProgressCounts] = None


class ConsultantReviewUpdate(BaseModel):
    consultant_accepted: Optional[bool] = None
    consultant_notes: Optional[str] = None


class HumanReview(BaseModel):
    content: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class DashboardCounters(BaseModel):
    total_docs: int = 0
    reviewed: int = 0
    not_reviewed: int = 0
    processing: int = 0


class ComplianceSummary(BaseModel):
    """Display metrics derived from a response set. Never persisted."""

    satisfactory_count: int = 0
    unsatisfactory_count: int = 0
    requirement_count: int = 0
    compliant_count: int = 0
    partially_compliant_count: int = 0
    non_compliant_count: int = 0
    total_relevant: int = 0
    compliance_score_percent: int = 0

    model_config = ConfigDict(frozen=True)


class AnswerProgress(BaseModel):
    answered: int = 0
    total: int = 0
    percent: int = 0


class ScoringMode(str, Enum):
    VERDICT = "verdict"
    COMPLIANCE = "compliance"


class ConsultantDecisionRequest(BaseModel):
    decision: ConsultantDecision
    notes: Optional[str] = Field(None, description="Optional consultant note stored with the decision")


class AssessmentCreate(BaseModel):
    document_id: str
    assessment_type: str = "ai"
    start: bool = True


class AssessmentStarted(BaseModel):
    assessment: Assessment
    job: Optional[StartJobResponse] = None


class HumanReviewUpdate(BaseModel):
    content: str
