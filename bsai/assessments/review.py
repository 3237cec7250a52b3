import logging
from typing import Iterable, List, Optional, Tuple

from bsai.core.errors import ConsultantReviewError, PlatformError
from bsai.assessments.schemas import (
    AssessmentResponse,
    ConsultantDecision,
    ConsultantReviewUpdate,
)
from bsai.assessments.service import AssessmentService

logger = logging.getLogger(__name__)


def apply_consultant_decision(
    responses: Iterable[AssessmentResponse],
    response_id: str,
    decision: ConsultantDecision,
    notes: Optional[str] = None,
) -> List[AssessmentResponse]:
    """Return a new response list with the consultant fields of `response_id` replaced.

    AI-produced fields are never touched.
    """
    updated = []
    for response in responses:
        if response.id == response_id:
            response = response.model_copy(
                update={"consultant_accepted": decision.accepted, "consultant_notes": notes}
            )
        updated.append(response)
    return updated


class ConsultantReviewOverlay:
    """A consultant's accept/reject/pending decisions layered over an AI response set.

    Decisions are persisted first and only reflected locally once the
    platform confirmed them; a failed save leaves `responses` untouched.
    """

    def __init__(self, service: AssessmentService, assessment_id: str, responses: Iterable[AssessmentResponse]):
        self.service = service
        self.assessment_id = assessment_id
        self._responses: Tuple[AssessmentResponse, ...] = tuple(responses)

    @classmethod
    async def load(cls, service: AssessmentService, assessment_id: str) -> "ConsultantReviewOverlay":
        responses = await service.get_assessment_responses(assessment_id)
        return cls(service, assessment_id, responses)

    @property
    def responses(self) -> Tuple[AssessmentResponse, ...]:
        return self._responses

    def get(self, response_id: str) -> AssessmentResponse:
        for response in self._responses:
            if response.id == response_id:
                return response
        raise LookupError(f"Response {response_id} is not part of assessment {self.assessment_id}")

    async def set_consultant_decision(
        self,
        response_id: str,
        decision: ConsultantDecision,
        notes: Optional[str] = None,
    ) -> AssessmentResponse:
        self.get(response_id)

        try:
            await self.service.update_consultant_review(
                self.assessment_id,
                response_id,
                ConsultantReviewUpdate(consultant_accepted=decision.accepted, consultant_notes=notes),
            )
        except PlatformError as e:
            logger.warning(f"Consultant review for response {response_id} not saved: {e}")
            raise ConsultantReviewError(response_id, e) from e

        self._responses = tuple(apply_consultant_decision(self._responses, response_id, decision, notes))
        logger.info(f"Response {response_id} marked as {decision.value}")
        return self.get(response_id)
