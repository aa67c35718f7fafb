# farm_advisory/deps.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from farm_advisory.advisory_service import AdvisoryService
from farm_advisory.auth import AuthUser, IdentityProvider, LocalIdentityProvider
from farm_advisory.config import settings
from farm_advisory.db import get_db
from farm_advisory.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

bearer_scheme = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    return lambda: datetime.now(timezone.utc)


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def get_identity_provider(
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> IdentityProvider:
    return LocalIdentityProvider(store, token_ttl=timedelta(hours=settings.token_ttl_hours), clock=clock)


def get_advisory_service(
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> AdvisoryService:
    return AdvisoryService(store, clock=clock)


def bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return credentials.credentials if credentials else None


def _resolve(idp: IdentityProvider, token: str) -> Optional[AuthUser]:
    try:
        return idp.get_user(token)
    except Exception:
        logger.exception("identity provider failed to validate a token")
        raise HTTPException(status_code=500, detail="Internal server error while verifying credentials")


def optional_user(
    token: Optional[str] = Depends(bearer_token),
    idp: IdentityProvider = Depends(get_identity_provider),
) -> Optional[AuthUser]:
    """Anonymous or unresolvable callers come through as None."""
    if not token:
        return None
    return _resolve(idp, token)


def require_user(
    token: Optional[str] = Depends(bearer_token),
    idp: IdentityProvider = Depends(get_identity_provider),
) -> AuthUser:
    if not token:
        raise HTTPException(status_code=401, detail="No authorization token provided")
    user = _resolve(idp, token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user
