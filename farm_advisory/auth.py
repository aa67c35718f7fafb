# farm_advisory/auth.py
from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from passlib.context import CryptContext
from pydantic import BaseModel, Field

from farm_advisory.errors import InvalidInput, Unauthorized
from farm_advisory.kv_store import KeyValueStore
from farm_advisory.utils import iso_timestamp, to_aware_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


class AuthUser(BaseModel):
    id: str
    email: str
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str


class AuthSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    user: AuthUser


class IdentityProvider(Protocol):
    def get_user(self, token: str) -> Optional[AuthUser]:
        """Resolve a bearer token to its user, or None if it is not valid."""
        ...

    def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> AuthUser:
        ...

    def sign_in(self, email: str, password: str) -> AuthSession:
        ...

    def sign_out(self, token: str) -> None:
        ...


class LocalIdentityProvider(IdentityProvider):
    """Email/password accounts and opaque bearer tokens kept in the KV store."""

    def __init__(self, store: KeyValueStore, *, token_ttl: timedelta = timedelta(hours=24), clock: Clock | None = None):
        self._store = store
        self._ttl = token_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    def _load_user(self, user_id: str) -> Optional[dict]:
        return self._store.get(f"auth_user:{user_id}")

    @staticmethod
    def _public(account: dict) -> AuthUser:
        return AuthUser(
            id=account["id"],
            email=account["email"],
            user_metadata=account.get("user_metadata") or {},
            created_at=account["created_at"],
        )

    def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> AuthUser:
        email = self._normalize_email(email)
        if not email:
            raise InvalidInput("Email is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        if self._store.get(f"auth_email:{email}") is not None:
            raise InvalidInput("A user with this email address has already been registered")

        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password_hash": pwd_context.hash(password),
            "user_metadata": dict(metadata),
            "created_at": iso_timestamp(self._clock()),
        }
        self._store.set(f"auth_user:{account['id']}", account)
        self._store.set(f"auth_email:{email}", account["id"])
        logger.info("registered user %s", account["id"])
        return self._public(account)

    def sign_in(self, email: str, password: str) -> AuthSession:
        user_id = self._store.get(f"auth_email:{self._normalize_email(email)}")
        account = self._load_user(user_id) if user_id else None
        if not account or not pwd_context.verify(password, account["password_hash"]):
            raise Unauthorized("Invalid login credentials")

        token = secrets.token_urlsafe(32)
        expires_at = to_aware_utc(self._clock()) + self._ttl
        self._store.set(f"auth_token:{token}", {"userId": account["id"], "expiresAt": iso_timestamp(expires_at)})
        return AuthSession(access_token=token, expires_at=iso_timestamp(expires_at), user=self._public(account))

    def get_user(self, token: str) -> Optional[AuthUser]:
        if not token:
            return None
        entry = self._store.get(f"auth_token:{token}")
        if entry is None:
            return None
        if to_aware_utc(entry["expiresAt"]) <= to_aware_utc(self._clock()):
            self._store.delete(f"auth_token:{token}")
            return None
        account = self._load_user(entry["userId"])
        return self._public(account) if account else None

    def sign_out(self, token: str) -> None:
        self._store.delete(f"auth_token:{token}")
