from fastapi import APIRouter

from bsai.assessments.router import router as assessments_router
from bsai.auth.router import router as auth_router
from bsai.documents.router import documents_router, router as project_documents_router
from bsai.routes.v1.websockets import router as ws_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(assessments_router)
api_router.include_router(project_documents_router)
api_router.include_router(documents_router)
api_router.include_router(ws_router, prefix="/ws")
