import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from typing import Any, AsyncGenerator, Dict, List, Optional

from bsai.auth.session import Session
from bsai.client import ApiClient
from bsai.main import app
from bsai.auth.dependencies import get_anonymous_client, get_api_client, get_session

PLATFORM_URL = "http://platform.test/api"
VALID_TOKEN = "tok-123"


class FakePlatform:
    """In-process stand-in for the compliance platform REST API."""

    def __init__(self):
        self.categories: List[Dict[str, Any]] = []
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.assessments: Dict[str, List[Dict[str, Any]]] = {}
        self.reports: Dict[str, Dict[str, Any]] = {}
        self.failing_documents: set = set()
        self.failing_reviews: set = set()
        self.failing_projects: set = set()
        self.review_updates: List[Dict[str, Any]] = []
        self.requests: List[Request] = []
        self.records: Dict[str, Dict[str, Any]] = {}
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.legacy_progress: Dict[str, Dict[str, Any]] = {}
        self.human_reviews: Dict[str, str] = {}
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.deleted: List[str] = []
        self.counters: Dict[str, int] = {"total_docs": 0, "reviewed": 0, "not_reviewed": 0, "processing": 0}
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        platform = self
        router = APIRouter(prefix="/api")

        def unauthorized():
            return JSONResponse(status_code=401, content={"message": "Unauthorized"})

        @router.post("/auth/login")
        async def login(body: Dict[str, Any]):
            if body.get("password") != "secret":
                return JSONResponse(status_code=401, content={"message": "Invalid credentials"})
            return {"token": VALID_TOKEN, "user": {"id": "u-1", "email": body["email"], "role": "bsai_staff"}}

        @router.get("/auth/me")
        async def me(authorization: Optional[str] = Header(None)):
            if authorization != f"Bearer {VALID_TOKEN}":
                return unauthorized()
            return {"id": "u-1", "email": "consultant@example.com", "first_name": "Sam", "role": "bsai_staff"}

        @router.get("/assessments/categories")
        async def categories():
            return platform.categories

        @router.get("/assessments/document/{document_id}")
        async def document_assessments(document_id: str):
            if document_id in platform.failing_documents:
                return JSONResponse(status_code=500, content={"error": "Assessment lookup failed"})
            return platform.assessments.get(document_id, [])

        @router.get("/assessments/{assessment_id}/report")
        async def report(assessment_id: str):
            if assessment_id not in platform.reports:
                return JSONResponse(status_code=404, content={"message": "Assessment not found"})
            return platform.reports[assessment_id]

        @router.patch("/assessments/{assessment_id}/responses/{response_id}/consultant-review")
        async def consultant_review(assessment_id: str, response_id: str, body: Dict[str, Any]):
            if response_id in platform.failing_reviews:
                return JSONResponse(status_code=503, content={"message": "Review service unavailable"})
            platform.review_updates.append({"assessment_id": assessment_id, "response_id": response_id, **body})
            return {"success": True}

        @router.get("/projects/{project_id}/documents")
        async def project_documents(project_id: str, request: Request):
            platform.requests.append(request)
            if request.headers.get("authorization") != f"Bearer {VALID_TOKEN}":
                return unauthorized()
            if project_id in platform.failing_projects:
                return JSONResponse(status_code=500, content={"message": "Document store unavailable"})
            return platform.pages.get(project_id, {"data": [], "total": 0, "page": 1, "page_size": 50, "total_pages": 1})

        @router.get("/documents/{document_id}/download")
        async def download(document_id: str):
            return Response(content=b"%PDF-1.7 fake", media_type="application/pdf")

        @router.post("/assessments")
        async def create_assessment(body: Dict[str, Any]):
            record = {"id": f"a-{len(platform.records) + 1}", "status": "pending", **body}
            platform.records[record["id"]] = record
            return record

        @router.get("/assessments/jobs/active")
        async def active_jobs():
            return {"active_jobs": [job for job in platform.jobs.values() if job["job"]["status"] in ("Queued", "Processing")]}

        @router.get("/assessments/dashboard/counters")
        async def dashboard_counters():
            return platform.counters

        @router.get("/assessments/{assessment_id}")
        async def get_assessment(assessment_id: str):
            if assessment_id not in platform.records:
                return JSONResponse(status_code=404, content={"message": "Assessment not found"})
            return platform.records[assessment_id]

        @router.post("/assessments/{assessment_id}/start")
        async def start_job(assessment_id: str):
            platform.jobs[assessment_id] = {
                "job": {"id": f"job-{assessment_id}", "assessment_id": assessment_id, "status": "Queued"},
                "is_active": True,
                "is_complete": False,
            }
            return {
                "success": True,
                "job_id": f"job-{assessment_id}",
                "assessment_id": assessment_id,
                "status": "Queued",
                "estimated_duration_minutes": 12,
            }

        @router.post("/assessments/{assessment_id}/complete")
        async def complete(assessment_id: str):
            record = platform.records.setdefault(assessment_id, {"id": assessment_id})
            record["status"] = "completed"
            return record

        @router.get("/assessments/{assessment_id}/job")
        async def job(assessment_id: str):
            if assessment_id not in platform.jobs:
                return JSONResponse(status_code=404, content={"message": "No job for assessment"})
            return platform.jobs[assessment_id]

        @router.get("/assessments/{assessment_id}/progress")
        async def progress(assessment_id: str):
            if assessment_id not in platform.legacy_progress:
                return JSONResponse(status_code=404, content={"message": "Assessment not found"})
            return platform.legacy_progress[assessment_id]

        @router.get("/assessments/{assessment_id}/report/markdown")
        async def markdown(assessment_id: str):
            return PlainTextResponse(f"# Compliance report {assessment_id}\n")

        @router.get("/assessments/{assessment_id}/human-review")
        async def get_human_review(assessment_id: str):
            return {"content": platform.human_reviews.get(assessment_id)}

        @router.post("/assessments/{assessment_id}/human-review")
        async def save_human_review(assessment_id: str, body: Dict[str, Any]):
            platform.human_reviews[assessment_id] = body["human_review"]
            return {"success": True}

        @router.get("/documents/{document_id}")
        async def get_document(document_id: str):
            if document_id not in platform.documents:
                return JSONResponse(status_code=404, content={"message": "Document not found"})
            return platform.documents[document_id]

        @router.patch("/documents/{document_id}")
        async def update_document(document_id: str, body: Dict[str, Any]):
            if document_id not in platform.documents:
                return JSONResponse(status_code=404, content={"message": "Document not found"})
            platform.documents[document_id].update(body)
            return platform.documents[document_id]

        @router.delete("/documents/{document_id}")
        async def delete_document(document_id: str):
            platform.documents.pop(document_id, None)
            platform.deleted.append(document_id)
            return Response(status_code=204)

        @router.get("/documents/{document_id}/view")
        async def view(document_id: str):
            return Response(content=b"%PDF-1.7 inline", media_type="application/pdf")

        fake = FastAPI()
        fake.include_router(router)
        return fake

    def transport(self) -> ASGITransport:
        return ASGITransport(app=self.app)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def session() -> Session:
    return Session(token=VALID_TOKEN)


@pytest_asyncio.fixture(scope="function")
async def api_client(platform: FakePlatform, session: Session) -> AsyncGenerator[ApiClient, None]:
    """Platform client wired to the fake platform."""
    async with ApiClient(session, base_url=PLATFORM_URL, transport=platform.transport()) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def async_client(platform: FakePlatform) -> AsyncGenerator[AsyncClient, None]:
    """Client for testing gateway endpoints, with the platform faked out."""
    async def override_get_api_client(session: Session = Depends(get_session)):
        async with ApiClient(session, base_url=PLATFORM_URL, transport=platform.transport()) as client:
            yield client

    async def override_get_anonymous_client():
        async with ApiClient(Session(), base_url=PLATFORM_URL, transport=platform.transport()) as client:
            yield client

    app.dependency_overrides[get_api_client] = override_get_api_client
    app.dependency_overrides[get_anonymous_client] = override_get_anonymous_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
