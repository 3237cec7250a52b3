from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from bsai.auth.session import Session
from bsai.client import ApiClient
from bsai.config import settings
from bsai.assessments.service import AssessmentService
from bsai.documents.service import DocumentService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)


async def get_session(token: Optional[str] = Depends(oauth2_scheme)) -> Session:
    """
    Session for the current request. A bearer token always wins; without one
    the token persisted in TOKEN_FILE (single-user deployments) is used.
    """
    if token:
        return Session(token=token)

    session = Session.init(settings.TOKEN_FILE)
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_anonymous_client() -> AsyncGenerator[ApiClient, None]:
    """Client for login; the token it obtains is persisted when TOKEN_FILE is set."""
    async with ApiClient(Session(token_file=settings.TOKEN_FILE)) as client:
        yield client


async def get_api_client(session: Session = Depends(get_session)) -> AsyncGenerator[ApiClient, None]:
    async with ApiClient(session) as client:
        yield client


async def get_assessment_service(client: ApiClient = Depends(get_api_client)) -> AssessmentService:
    return AssessmentService(client)


async def get_document_service(client: ApiClient = Depends(get_api_client)) -> DocumentService:
    return DocumentService(client)
