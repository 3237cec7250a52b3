import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from bsai.core.errors import PlatformError
from bsai.assessments.aggregation import summarize, summarize_answer_progress
from bsai.assessments.schemas import Assessment, AssessmentStatus, ScoringMode
from bsai.assessments.service import AssessmentService
from bsai.documents.schemas import (
    AnnotatedDocumentPage,
    Document,
    DocumentCategory,
    DocumentRow,
    EvaluationProgress,
    PaginationParams,
)
from bsai.documents.service import DocumentService

logger = logging.getLogger(__name__)

RUNNING_STATUSES = (AssessmentStatus.IN_PROGRESS.value, AssessmentStatus.PROCESSING.value)
SCORABLE_STATUSES = (
    AssessmentStatus.COMPLETED.value,
    AssessmentStatus.REVIEWED.value,
) + RUNNING_STATUSES
UNFINISHED_STATUSES = (AssessmentStatus.PENDING.value,) + RUNNING_STATUSES


def select_current_assessment(assessments: Sequence[Assessment]) -> Optional[Assessment]:
    """Completed beats running beats anything; the platform lists newest first."""
    for assessment in assessments:
        if assessment.status == AssessmentStatus.COMPLETED.value:
            return assessment
    for assessment in assessments:
        if assessment.status in RUNNING_STATUSES:
            return assessment
    return assessments[0] if assessments else None


def review_status_for(assessment: Optional[Assessment]) -> str:
    if assessment is None:
        return "not_reviewed"
    if assessment.status in (AssessmentStatus.COMPLETED.value, AssessmentStatus.REVIEWED.value):
        return "reviewed"
    if assessment.status in RUNNING_STATUSES:
        return "processing"
    return "pending_review"


class CategoryIndex:
    """Category lookup by id, built once per listing."""

    def __init__(self, categories: Iterable[DocumentCategory] = ()):
        self._by_id: Dict[str, DocumentCategory] = {c.id: c for c in categories}

    def get(self, category_id: Optional[str]) -> Optional[DocumentCategory]:
        if not category_id:
            return None
        return self._by_id.get(category_id)

    def __len__(self) -> int:
        return len(self._by_id)


class DocumentListReconciler:
    """Annotates document tables with each document's current assessment and score.

    Per-document lookups run concurrently; a lookup that fails only affects
    its own row, which falls back to "no assessment".
    """

    def __init__(
        self,
        documents: DocumentService,
        assessments: AssessmentService,
        mode: ScoringMode = ScoringMode.COMPLIANCE,
    ):
        self.documents = documents
        self.assessments = assessments
        self.mode = mode
        self._categories: Optional[CategoryIndex] = None

    async def categories(self) -> CategoryIndex:
        if self._categories is None:
            try:
                categories = await self.assessments.get_categories()
            except PlatformError as e:
                logger.warning(f"Failed to load categories: {e}")
                categories = []
            self._categories = CategoryIndex(categories)
        return self._categories

    async def resolve_row(self, document: Document, categories: Optional[CategoryIndex] = None) -> DocumentRow:
        category = (categories or CategoryIndex()).get(document.category_id)
        row = DocumentRow(
            document=document,
            category_name=category.name if category else None,
            category_code=category.code if category else None,
        )

        try:
            assessments = await self.assessments.get_document_assessments(document.id)
        except PlatformError as e:
            logger.warning(f"Failed to load assessments for document {document.id}: {e}")
            return row

        selected = select_current_assessment(assessments)
        if selected is None:
            return row
        row = row.model_copy(
            update={
                "assessment_id": selected.id,
                "assessment_status": selected.status,
                "review_status": review_status_for(selected),
            }
        )
        if selected.status not in SCORABLE_STATUSES:
            return row

        try:
            report = await self.assessments.get_report(selected.id)
        except PlatformError as e:
            logger.warning(f"Failed to load report for assessment {selected.id}: {e}")
            return row

        summary = summarize(report.flat_responses(), self.mode)
        return row.model_copy(update={"summary": summary, "compliance_score": summary.compliance_score_percent})

    async def annotate(self, documents: Sequence[Document]) -> List[DocumentRow]:
        categories = await self.categories()
        return list(await asyncio.gather(*(self.resolve_row(d, categories) for d in documents)))

    async def annotate_page(self, project_id: str, params: PaginationParams) -> AnnotatedDocumentPage:
        page = await self.documents.list_documents_paginated(project_id, params)
        rows = await self.annotate(page.data)
        return AnnotatedDocumentPage(
            rows=rows,
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
        )

    async def _document_progress(self, document: Document) -> List[EvaluationProgress]:
        try:
            assessments = await self.assessments.get_document_assessments(document.id)
            unfinished = [a for a in assessments if a.status in UNFINISHED_STATUSES]
            response_sets = await asyncio.gather(
                *(self.assessments.get_assessment_responses(a.id) for a in unfinished)
            )
        except PlatformError as e:
            logger.warning(f"Failed to load evaluation progress for document {document.id}: {e}")
            return []

        items = []
        for assessment, responses in zip(unfinished, response_sets):
            progress = summarize_answer_progress(responses)
            items.append(
                EvaluationProgress(
                    assessment_id=assessment.id,
                    document_id=document.id,
                    document_name=document.display_name,
                    assessment_type=assessment.assessment_type,
                    status=assessment.status,
                    questions_answered=progress.answered,
                    total_questions=progress.total,
                    progress=progress.percent,
                    started_at=assessment.started_at or assessment.created_at,
                    assessor=assessment.assessor_name,
                )
            )
        return items

    async def collect_in_progress(self, documents: Sequence[Document]) -> List[EvaluationProgress]:
        """Unfinished evaluations across `documents`, most recently started first."""
        per_document = await asyncio.gather(*(self._document_progress(d) for d in documents))
        items = [item for group in per_document for item in group]
        items.sort(key=lambda item: item.started_at or "", reverse=True)
        return items
