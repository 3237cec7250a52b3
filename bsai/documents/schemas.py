from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from bsai.assessments.schemas import ComplianceSummary


class DocumentCategory(BaseModel):
    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None


class Document(BaseModel):
    id: str
    project_id: Optional[str] = None
    category_id: Optional[str] = None
    filename: Optional[str] = None
    original_filename: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    version: Optional[int] = None
    status: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    parent_folder_id: Optional[str] = None
    full_path: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @property
    def display_name(self) -> str:
        return self.original_filename or self.filename or self.id


class DocumentUpdate(BaseModel):
    category_id: Optional[str] = None
    status: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PaginationParams(BaseModel):
    page: int = 1
    page_size: int = 50
    folder_id: Optional[str] = None
    category_id: Optional[str] = None
    search: Optional[str] = None
    root_only: Optional[bool] = None


class PaginatedDocuments(BaseModel):
    data: List[Document] = []
    total: int = 0
    page: int = 1
    page_size: int = 50
    total_pages: int = 1


class DocumentRow(BaseModel):
    """A document annotated with its current assessment and score."""

    document: Document
    category_name: Optional[str] = None
    category_code: Optional[str] = None
    assessment_id: Optional[str] = None
    assessment_status: Optional[str] = None
    review_status: str = "not_reviewed"
    compliance_score: Optional[int] = None
    summary: Optional[ComplianceSummary] = None


class AnnotatedDocumentPage(BaseModel):
    rows: List[DocumentRow] = []
    total: int = 0
    page: int = 1
    page_size: int = 50
    total_pages: int = 1


class EvaluationProgress(BaseModel):
    assessment_id: str
    document_id: str
    document_name: str
    assessment_type: Optional[str] = None
    status: Optional[str] = None
    questions_answered: int = 0
    total_questions: int = 0
    progress: int = 0
    started_at: Optional[str] = None
    assessor: Optional[str] = None
