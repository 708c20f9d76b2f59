import base64
import hashlib
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from passlib.context import CryptContext

from src.core.config import settings


class SecurityService:
    def __init__(self):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
        self.secret_key: str = settings.SECRET_KEY
        self.algorithm: str = settings.ALGORITHM
        self.access_token_expire_minutes: int = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def create_session(self, subject: Any) -> dict[str, Any]:
        """Issue a bearer session for ``subject``."""
        expires_in = self.access_token_expire_minutes * 60
        expire: datetime = datetime.now(UTC) + timedelta(seconds=expires_in)
        token = jwt.encode({"sub": str(subject), "exp": expire}, self.secret_key, algorithm=self.algorithm)
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "expires_at": int(expire.timestamp()),
        }

    def prehash_password(self, password: str) -> str:
        """SHA-256 prehash so passwords longer than bcrypt's 72-byte limit stay distinct."""
        sha256_hash: bytes = hashlib.sha256(password.encode()).digest()
        return base64.b64encode(sha256_hash).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        prehashed: str = self.prehash_password(plain_password)
        return self.pwd_context.verify(prehashed, hashed_password)

    def get_password_hash(self, password: str) -> str:
        prehashed: str = self.prehash_password(password)
        return self.pwd_context.hash(prehashed)


security_service: SecurityService = SecurityService()
