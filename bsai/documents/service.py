import logging
from typing import List

from bsai.client import ApiClient
from bsai.assessments.service import parse_payload
from bsai.documents.schemas import (
    Document,
    DocumentUpdate,
    PaginatedDocuments,
    PaginationParams,
)

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, client: ApiClient):
        self.client = client

    async def list_documents(self, project_id: str) -> List[Document]:
        """All documents of a project. The route may answer with a bare list or a page."""
        data = await self.client.get(f"/projects/{project_id}/documents")
        if isinstance(data, dict):
            data = data.get("data", [])
        return parse_payload(List[Document], data or [])

    async def list_documents_paginated(
        self, project_id: str, params: PaginationParams
    ) -> PaginatedDocuments:
        data = await self.client.get(
            f"/projects/{project_id}/documents",
            params=params.model_dump(exclude_none=True),
        )
        return parse_payload(PaginatedDocuments, data)

    async def get_document(self, document_id: str) -> Document:
        data = await self.client.get(f"/documents/{document_id}")
        return parse_payload(Document, data)

    async def update_document(self, document_id: str, update: DocumentUpdate) -> Document:
        data = await self.client.patch(
            f"/documents/{document_id}", json=update.model_dump(exclude_none=True)
        )
        return parse_payload(Document, data)

    async def update_category(self, document_id: str, category_id: str) -> Document:
        document = await self.update_document(document_id, DocumentUpdate(category_id=category_id))
        logger.info(f"Document {document_id} moved to category {category_id}")
        return document

    async def delete_document(self, document_id: str) -> None:
        await self.client.delete(f"/documents/{document_id}")

    async def download_document(self, document_id: str) -> bytes:
        return await self.client.get(f"/documents/{document_id}/download", raw=True)

    async def view_document(self, document_id: str) -> bytes:
        """Inline rendition used by the viewer; same bytes, served for display."""
        return await self.client.get(f"/documents/{document_id}/view", raw=True)
