import logging

from bsai.client import ApiClient
from bsai.auth import schemas
from bsai.assessments.service import parse_payload

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, client: ApiClient):
        self.client = client

    @property
    def session(self):
        return self.client.session

    async def login(self, credentials: schemas.UserLogin) -> schemas.LoginResponse:
        data = await self.client.post("/auth/login", json=credentials.model_dump())
        response = parse_payload(schemas.LoginResponse, data)
        self.session.set_token(response.token)
        logger.info(f"Logged in as {response.user.full_name}")
        return response

    async def get_current_user(self) -> schemas.User:
        data = await self.client.get("/auth/me")
        return parse_payload(schemas.User, data)

    def logout(self) -> None:
        self.session.clear()
