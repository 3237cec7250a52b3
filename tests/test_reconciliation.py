import asyncio
from unittest.mock import AsyncMock

import pytest

from bsai.assessments.schemas import Assessment, ScoringMode
from bsai.assessments.service import AssessmentService
from bsai.core.errors import ApiError
from bsai.documents.reconciliation import (
    CategoryIndex,
    DocumentListReconciler,
    review_status_for,
    select_current_assessment,
)
from bsai.documents.schemas import Document, DocumentCategory, PaginatedDocuments, PaginationParams
from bsai.documents.service import DocumentService

from factories import make_report, response_payload


def assessment(assessment_id, status, **extra):
    return Assessment(id=assessment_id, status=status, **extra)


@pytest.fixture
def assessments():
    mock = AsyncMock(spec=AssessmentService)
    mock.get_categories.return_value = [DocumentCategory(id="c-1", name="Fire Safety", code="FS")]
    mock.get_document_assessments.return_value = []
    return mock


@pytest.fixture
def documents():
    return AsyncMock(spec=DocumentService)


@pytest.fixture
def reconciler(documents, assessments):
    return DocumentListReconciler(documents, assessments)


class TestSelection:
    def test_completed_wins_over_newer_running(self):
        chosen = select_current_assessment(
            [assessment("a-3", "in_progress"), assessment("a-2", "completed"), assessment("a-1", "completed")]
        )
        assert chosen.id == "a-2"

    def test_running_wins_over_pending(self):
        chosen = select_current_assessment([assessment("a-2", "pending"), assessment("a-1", "processing")])
        assert chosen.id == "a-1"

    def test_falls_back_to_first(self):
        chosen = select_current_assessment([assessment("a-2", "failed"), assessment("a-1", "pending")])
        assert chosen.id == "a-2"

    def test_reviewed_is_not_preferred_as_completed(self):
        chosen = select_current_assessment([assessment("a-2", "reviewed"), assessment("a-1", "in_progress")])
        assert chosen.id == "a-1"

    def test_empty(self):
        assert select_current_assessment([]) is None

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("completed", "reviewed"),
            ("reviewed", "reviewed"),
            ("in_progress", "processing"),
            ("processing", "processing"),
            ("pending", "pending_review"),
            ("failed", "pending_review"),
        ],
    )
    def test_review_status(self, status, expected):
        assert review_status_for(assessment("a-1", status)) == expected

    def test_review_status_without_assessment(self):
        assert review_status_for(None) == "not_reviewed"


def test_category_index():
    index = CategoryIndex([DocumentCategory(id="c-1", name="Fire Safety")])
    assert index.get("c-1").name == "Fire Safety"
    assert index.get("c-9") is None
    assert index.get(None) is None
    assert len(index) == 1


class TestAnnotate:
    @pytest.mark.asyncio
    async def test_row_carries_assessment_and_score(self, reconciler, assessments):
        assessments.get_document_assessments.return_value = [assessment("a-1", "completed")]
        assessments.get_report.return_value = make_report(
            [
                response_payload("r1", "satisfactory", "compliant"),
                response_payload("r2", "unsatisfactory", "partially_compliant"),
            ]
        )

        [row] = await reconciler.annotate([Document(id="d-1", category_id="c-1")])

        assert row.assessment_id == "a-1"
        assert row.review_status == "reviewed"
        assert row.category_name == "Fire Safety"
        assert row.category_code == "FS"
        assert row.compliance_score == 75
        assert row.summary.compliant_count == 1

    @pytest.mark.asyncio
    async def test_verdict_mode(self, documents, assessments):
        assessments.get_document_assessments.return_value = [assessment("a-1", "completed")]
        assessments.get_report.return_value = make_report(
            [
                response_payload("r1", "satisfactory", "compliant"),
                response_payload("r2", "unsatisfactory", "partially_compliant"),
            ]
        )
        reconciler = DocumentListReconciler(documents, assessments, mode=ScoringMode.VERDICT)

        [row] = await reconciler.annotate([Document(id="d-1")])

        assert row.compliance_score == 50

    @pytest.mark.asyncio
    async def test_unscored_statuses_skip_the_report(self, reconciler, assessments):
        assessments.get_document_assessments.return_value = [assessment("a-1", "pending")]

        [row] = await reconciler.annotate([Document(id="d-1")])

        assert row.assessment_id == "a-1"
        assert row.review_status == "pending_review"
        assert row.compliance_score is None
        assessments.get_report.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_document_without_assessments(self, reconciler):
        [row] = await reconciler.annotate([Document(id="d-1")])

        assert row.assessment_id is None
        assert row.review_status == "not_reviewed"

    @pytest.mark.asyncio
    async def test_failed_lookup_degrades_only_its_row(self, reconciler, assessments):
        async def lookup(document_id):
            if document_id == "d-2":
                raise ApiError(500, "Assessment lookup failed")
            return [assessment(f"a-{document_id}", "in_progress")]

        assessments.get_document_assessments.side_effect = lookup
        assessments.get_report.return_value = make_report([response_payload("r1", "satisfactory", "compliant")])

        rows = await reconciler.annotate([Document(id="d-1"), Document(id="d-2"), Document(id="d-3")])

        assert [r.document.id for r in rows] == ["d-1", "d-2", "d-3"]
        assert rows[0].assessment_id == "a-d-1"
        assert rows[1].assessment_id is None
        assert rows[1].review_status == "not_reviewed"
        assert rows[2].compliance_score == 100

    @pytest.mark.asyncio
    async def test_failed_report_keeps_assessment_without_score(self, reconciler, assessments):
        assessments.get_document_assessments.return_value = [assessment("a-1", "completed")]
        assessments.get_report.side_effect = ApiError(404, "Assessment not found")

        [row] = await reconciler.annotate([Document(id="d-1")])

        assert row.assessment_id == "a-1"
        assert row.compliance_score is None

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, reconciler, assessments):
        docs = [Document(id=f"d-{i}") for i in range(5)]
        in_flight = 0
        all_started = asyncio.Event()

        async def lookup(document_id):
            nonlocal in_flight
            in_flight += 1
            if in_flight == len(docs):
                all_started.set()
            await all_started.wait()
            return []

        assessments.get_document_assessments.side_effect = lookup

        rows = await asyncio.wait_for(reconciler.annotate(docs), timeout=2)

        assert len(rows) == 5

    @pytest.mark.asyncio
    async def test_categories_loaded_once(self, reconciler, assessments):
        await reconciler.annotate([Document(id="d-1")])
        await reconciler.annotate([Document(id="d-2")])

        assessments.get_categories.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_category_failure_still_lists(self, reconciler, assessments):
        assessments.get_categories.side_effect = ApiError(None, "timed out")

        [row] = await reconciler.annotate([Document(id="d-1", category_id="c-1")])

        assert row.category_name is None

    @pytest.mark.asyncio
    async def test_annotate_page(self, reconciler, documents):
        documents.list_documents_paginated.return_value = PaginatedDocuments(
            data=[Document(id="d-1"), Document(id="d-2")], total=12, page=2, page_size=2, total_pages=6
        )
        params = PaginationParams(page=2, page_size=2)

        page = await reconciler.annotate_page("p-1", params)

        documents.list_documents_paginated.assert_awaited_once_with("p-1", params)
        assert [r.document.id for r in page.rows] == ["d-1", "d-2"]
        assert page.total == 12
        assert page.total_pages == 6


class TestInProgress:
    @pytest.mark.asyncio
    async def test_collects_unfinished_newest_first(self, reconciler, assessments):
        lookups = {
            "d-1": [
                assessment("a-1", "in_progress", assessment_type="ai", started_at="2024-03-01T10:00:00Z"),
                assessment("a-2", "completed", started_at="2024-03-05T10:00:00Z"),
            ],
            "d-2": [assessment("a-3", "pending", assessor_name="Sam", created_at="2024-03-04T09:00:00Z")],
        }
        assessments.get_document_assessments.side_effect = lambda document_id: lookups[document_id]
        assessments.get_assessment_responses.side_effect = lambda assessment_id: [
            make_report([response_payload("r1", "satisfactory"), response_payload("r2")]).flat_responses()
        ][0]

        items = await reconciler.collect_in_progress(
            [Document(id="d-1", original_filename="strategy.pdf"), Document(id="d-2", filename="plan.pdf")]
        )

        assert [i.assessment_id for i in items] == ["a-3", "a-1"]
        assert items[0].document_name == "plan.pdf"
        assert items[0].assessor == "Sam"
        assert items[1].document_name == "strategy.pdf"
        assert items[1].questions_answered == 1
        assert items[1].total_questions == 2
        assert items[1].progress == 50

    @pytest.mark.asyncio
    async def test_failing_document_is_skipped(self, reconciler, assessments):
        assessments.get_document_assessments.side_effect = ApiError(500, "Assessment lookup failed")

        assert await reconciler.collect_in_progress([Document(id="d-1")]) == []
