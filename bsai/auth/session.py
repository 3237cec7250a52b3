import logging
import time
from pathlib import Path
from typing import Optional, Union

from jose import jwt, JWTError

logger = logging.getLogger(__name__)


class Session:
    """Holds the platform bearer token for one user.

    Passed explicitly to the API client instead of living in module state.
    When a token file is configured the token survives restarts; `clear()`
    wipes both copies and is what the client calls on any 401.
    """

    def __init__(self, token: Optional[str] = None, token_file: Union[str, Path, None] = None):
        self._token = token
        self.token_file = Path(token_file).expanduser() if token_file else None

    @classmethod
    def init(cls, token_file: Union[str, Path, None] = None) -> "Session":
        """Restore a session from the persisted token, if any."""
        session = cls(token_file=token_file)
        if session.token_file and session.token_file.is_file():
            token = session.token_file.read_text(encoding="utf-8").strip()
            if token and not _is_expired(token):
                session._token = token
            elif token:
                logger.info("Discarding expired persisted token")
                session.clear()
        return session

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str) -> None:
        self._token = token
        if self.token_file:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            self.token_file.write_text(token, encoding="utf-8")

    def clear(self) -> None:
        self._token = None
        if self.token_file and self.token_file.exists():
            self.token_file.unlink()


def _is_expired(token: str) -> bool:
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        # Opaque token, let the platform decide.
        return False
    exp = claims.get("exp")
    return isinstance(exp, (int, float)) and exp <= time.time()
