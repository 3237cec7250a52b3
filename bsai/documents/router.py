from typing import List, Optional
from fastapi import APIRouter, Depends, Response

from bsai.auth.dependencies import get_assessment_service, get_document_service
from bsai.config import settings
from bsai.assessments.service import AssessmentService
from bsai.documents.reconciliation import DocumentListReconciler
from bsai.documents.schemas import (
    AnnotatedDocumentPage,
    Document,
    DocumentUpdate,
    EvaluationProgress,
    PaginationParams,
)
from bsai.documents.service import DocumentService

router = APIRouter(prefix="/projects/{project_id}", tags=["documents"])


@router.get("/documents", response_model=AnnotatedDocumentPage)
async def list_annotated_documents(
    project_id: str,
    page: int = 1,
    page_size: int = settings.DOCUMENT_PAGE_SIZE,
    folder_id: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    root_only: Optional[bool] = None,
    documents: DocumentService = Depends(get_document_service),
    assessments: AssessmentService = Depends(get_assessment_service),
):
    """One page of documents, each with its current assessment and compliance score."""
    params = PaginationParams(
        page=page,
        page_size=page_size,
        folder_id=folder_id,
        category_id=category_id,
        search=search,
        root_only=root_only,
    )
    return await DocumentListReconciler(documents, assessments).annotate_page(project_id, params)


@router.get("/evaluations/in-progress", response_model=List[EvaluationProgress])
async def list_evaluations_in_progress(
    project_id: str,
    documents: DocumentService = Depends(get_document_service),
    assessments: AssessmentService = Depends(get_assessment_service),
):
    project_documents = await documents.list_documents(project_id)
    return await DocumentListReconciler(documents, assessments).collect_in_progress(project_documents)


documents_router = APIRouter(prefix="/documents", tags=["documents"])


@documents_router.get("/{document_id}", response_model=Document)
async def get_document(document_id: str, documents: DocumentService = Depends(get_document_service)):
    return await documents.get_document(document_id)


@documents_router.patch("/{document_id}", response_model=Document)
async def update_document(
    document_id: str,
    update: DocumentUpdate,
    documents: DocumentService = Depends(get_document_service),
):
    if update.model_dump(exclude_none=True).keys() == {"category_id"}:
        return await documents.update_category(document_id, update.category_id)
    return await documents.update_document(document_id, update)


@documents_router.delete("/{document_id}", status_code=204)
async def delete_document(document_id: str, documents: DocumentService = Depends(get_document_service)):
    await documents.delete_document(document_id)
    return Response(status_code=204)


@documents_router.get("/{document_id}/download")
async def download_document(document_id: str, documents: DocumentService = Depends(get_document_service)):
    content = await documents.download_document(document_id)
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{document_id}"'},
    )


@documents_router.get("/{document_id}/view")
async def view_document(document_id: str, documents: DocumentService = Depends(get_document_service)):
    content = await documents.view_document(document_id)
    return Response(content=content, media_type="application/pdf", headers={"Content-Disposition": "inline"})
