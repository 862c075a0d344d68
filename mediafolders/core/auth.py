"""Owner resolution, exposed as a FastAPI dependency.

``require_owner`` returns the Owner the request acts for, or raises 401.

With ``settings.auth_enabled`` the owner comes from a Bearer token (subject =
owner id). Without it, the ``X-Owner-Id`` header is trusted as-is so local
development works without issuing tokens.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import decode_token
from ..database import get_db
from ..exceptions import AuthenticationError
from ..models.owner import Owner
from ..repositories.owner_repository import OwnerRepository

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def require_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_owner_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Owner:
    """Resolve the requesting owner."""
    if settings.auth_enabled:
        if credentials is None:
            raise AuthenticationError("Missing authentication token")
        payload = decode_token(
            credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
        )
        if payload is None:
            raise AuthenticationError("Invalid or expired token")
        owner_ref = payload.sub
    else:
        if not x_owner_id:
            raise AuthenticationError("Missing X-Owner-Id header")
        owner_ref = x_owner_id

    try:
        owner_id = int(owner_ref)
    except ValueError:
        raise AuthenticationError(f"Malformed owner id: {owner_ref}")

    return OwnerRepository(db).get_by_id(owner_id)
