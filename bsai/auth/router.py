from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Response

from bsai.auth import schemas
from bsai.auth.dependencies import get_anonymous_client, get_api_client
from bsai.auth.service import AuthService
from bsai.client import ApiClient
from bsai.core.errors import ApiError, AuthenticationError

router = APIRouter()

@router.post("/login", response_model=schemas.Token)
async def login_access_token(
    login_data: schemas.UserLogin,
    client: ApiClient = Depends(get_anonymous_client),
) -> Any:
    """
    JSON login endpoint. Accepts {"email": "...", "password": "..."} and
    exchanges it for a platform token.
    """
    try:
        response = await AuthService(client).login(login_data)
    except AuthenticationError:
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    except ApiError as e:
        raise HTTPException(status_code=400, detail=e.message or "Invalid credentials")
    return {"access_token": response.token, "token_type": "bearer", "user": response.user}


@router.get("/me", response_model=schemas.User)
async def read_current_user(client: ApiClient = Depends(get_api_client)) -> Any:
    return await AuthService(client).get_current_user()


@router.post("/logout", status_code=204)
async def logout(client: ApiClient = Depends(get_api_client)) -> Response:
    """Forget the session. Only a persisted TOKEN_FILE token is held server-side."""
    AuthService(client).logout()
    return Response(status_code=204)
