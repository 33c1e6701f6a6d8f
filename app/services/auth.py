import logging
from datetime import timedelta
from typing import Optional
from pydantic import BaseModel

from app.core.config import Settings, settings as default_settings
from app.core.security import verify_password, create_access_token, decode_access_token

logger = logging.getLogger(__name__)


class AdminIdentity(BaseModel):
    id: str
    username: str
    email: str


class AdminAuthService:
    """Single-admin identity provider backed by configuration."""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def _identity(self) -> AdminIdentity:
        return AdminIdentity(
            id=self.settings.ADMIN_ID,
            username=self.settings.ADMIN_USERNAME,
            email=self.settings.ADMIN_EMAIL,
        )

    def authenticate(self, username: str, password: str) -> Optional[AdminIdentity]:
        if not username or not password:
            return None
        if username != self.settings.ADMIN_USERNAME:
            logger.warning("Admin login rejected: unknown username")
            return None
        if not verify_password(password, self.settings.ADMIN_PASSWORD_HASH):
            logger.warning("Admin login rejected: bad password")
            return None
        logger.info("Admin %s logged in", username)
        return self._identity()

    def create_access_token(self, identity: AdminIdentity, expires_delta: Optional[timedelta] = None) -> str:
        return create_access_token(data={"sub": identity.username}, expires_delta=expires_delta)

    def current_admin_identity(self, token: Optional[str]) -> Optional[AdminIdentity]:
        if not token:
            return None
        payload = decode_access_token(token)
        if not payload:
            return None
        if payload.get("sub") != self.settings.ADMIN_USERNAME:
            return None
        return self._identity()
