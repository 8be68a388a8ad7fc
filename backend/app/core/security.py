"""
Token issuance and verification for the back-office API.

Access and refresh tokens are JWTs signed with two distinct secrets, so a
token of one kind never verifies as the other. Both carry the same identity
claims: user id, email and profile.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from backend.app.core.config import Settings, get_settings


class Profile(str, Enum):
    """Closed set of roles governing authorization decisions."""
    ADMINISTRATOR = "ADMINISTRATOR"
    MANAGER = "MANAGER"
    COORDINATOR = "COORDINATOR"
    NEGOTIATOR = "NEGOTIATOR"
    LAWYER = "LAWYER"
    CONTROLLER = "CONTROLLER"


class TokenPayload(BaseModel):
    """Identity claims embedded in every token."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    email: str
    profile: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenConfig:
    """Signing material, built once at startup."""
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )


class TokenService:
    """Signs and verifies access/refresh token pairs."""

    def __init__(self, config: TokenConfig):
        if config.access_secret == config.refresh_secret:
            raise ValueError("Access and refresh tokens must use different signing secrets")
        self.config = config

    def _sign(self, payload: TokenPayload, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        claims = payload.model_dump(by_alias=True)
        claims.update({
            "iat": now,
            "exp": now + ttl,
            # Keeps tokens minted in the same second distinct
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(claims, secret, algorithm=self.config.algorithm)

    def _verify(self, token: str, secret: str) -> Optional[TokenPayload]:
        try:
            claims = jwt.decode(token, secret, algorithms=[self.config.algorithm])
            return TokenPayload.model_validate(claims)
        except (JWTError, ValidationError, AttributeError):
            return None

    def issue_token_pair(self, payload: TokenPayload) -> TokenPair:
        return TokenPair(
            access_token=self._sign(payload, self.config.access_secret, self.config.access_ttl),
            refresh_token=self._sign(payload, self.config.refresh_secret, self.config.refresh_ttl),
        )

    def verify_access_token(self, token: str) -> Optional[TokenPayload]:
        """Decoded payload, or None for a bad signature, malformed or expired token."""
        return self._verify(token, self.config.access_secret)

    def verify_refresh_token(self, token: str) -> Optional[TokenPayload]:
        """Same contract as verify_access_token, against the refresh secret."""
        return self._verify(token, self.config.refresh_secret)

    def refresh_expiry(self, now: Optional[datetime] = None) -> datetime:
        """Expiry to persist alongside a freshly issued refresh token."""
        return (now or datetime.now(timezone.utc)) + self.config.refresh_ttl


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built from settings."""
    return TokenService(TokenConfig.from_settings(get_settings()))


class CurrentUser(BaseModel):
    """Caller identity attached to the request by the authentication gate."""
    id: str
    email: str
    profile: str
