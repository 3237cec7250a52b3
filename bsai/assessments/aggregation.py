"""Compliance metrics derived from assessment response sets.

Every screen that shows a score or a verdict tally goes through these
functions so the numbers agree wherever they are displayed. Two scoring
modes exist and they are allowed to disagree on the same data:

* verdict mode (dashboards, review modal, job progress): share of relevant
  responses with a ``satisfactory`` verdict.
* compliance mode (document tables, reports): weighted compliance level,
  1.0 per ``compliant`` and 0.5 per ``partially_compliant``, with
  ``not_applicable`` verdicts removed from the denominator.

Responses flagged ``is_relevant=False`` are dropped in both modes unless
``include_non_relevant`` is set. Missing verdicts or compliance levels
count toward the denominator but never toward the numerator.
"""
import math
from typing import Iterable, List

from bsai.assessments.schemas import (
    AnswerProgress,
    AssessmentResponse,
    ComplianceLevel,
    ComplianceSummary,
    ScoringMode,
    Verdict,
)

COMPLIANCE_WEIGHTS = {
    ComplianceLevel.COMPLIANT: 1.0,
    ComplianceLevel.PARTIALLY_COMPLIANT: 0.5,
    ComplianceLevel.NON_COMPLIANT: 0.0,
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))


def percent(part: float, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def relevant_responses(
    responses: Iterable[AssessmentResponse], include_non_relevant: bool = False
) -> List[AssessmentResponse]:
    return [r for r in responses if include_non_relevant or r.relevant]


def _tally(responses: List[AssessmentResponse]) -> dict:
    counts = {
        "satisfactory_count": 0,
        "unsatisfactory_count": 0,
        "requirement_count": 0,
        "compliant_count": 0,
        "partially_compliant_count": 0,
        "non_compliant_count": 0,
    }
    for r in responses:
        if r.verdict in (Verdict.SATISFACTORY, Verdict.UNSATISFACTORY, Verdict.REQUIREMENT):
            counts[f"{r.verdict.value}_count"] += 1
        if r.compliance_level is not None:
            counts[f"{r.compliance_level.value}_count"] += 1
    return counts


def summarize_verdicts(
    responses: Iterable[AssessmentResponse], include_non_relevant: bool = False
) -> ComplianceSummary:
    """Verdict tally with score = satisfactory / relevant."""
    scoped = relevant_responses(responses, include_non_relevant)
    counts = _tally(scoped)
    return ComplianceSummary(
        **counts,
        total_relevant=len(scoped),
        compliance_score_percent=percent(counts["satisfactory_count"], len(scoped)),
    )


def summarize_compliance(
    responses: Iterable[AssessmentResponse], include_non_relevant: bool = False
) -> ComplianceSummary:
    """Weighted compliance-level score; not_applicable verdicts are out of scope entirely."""
    scoped = [
        r
        for r in relevant_responses(responses, include_non_relevant)
        if r.verdict != Verdict.NOT_APPLICABLE
    ]
    points = sum(COMPLIANCE_WEIGHTS.get(r.compliance_level, 0.0) for r in scoped)
    return ComplianceSummary(
        **_tally(scoped),
        total_relevant=len(scoped),
        compliance_score_percent=percent(points, len(scoped)),
    )


def summarize(
    responses: Iterable[AssessmentResponse],
    mode: ScoringMode = ScoringMode.VERDICT,
    include_non_relevant: bool = False,
) -> ComplianceSummary:
    if mode == ScoringMode.COMPLIANCE:
        return summarize_compliance(responses, include_non_relevant)
    return summarize_verdicts(responses, include_non_relevant)


def summarize_answer_progress(responses: Iterable[AssessmentResponse]) -> AnswerProgress:
    """How far a running assessment has got: answered relevant questions over relevant questions."""
    scoped = relevant_responses(responses)
    answered = sum(1 for r in scoped if r.verdict is not None)
    return AnswerProgress(answered=answered, total=len(scoped), percent=percent(answered, len(scoped)))
