"""Actor identity: FastAPI dependency exposing who is making the request.

Folio does not authenticate anyone itself. An upstream gateway verifies the
caller and forwards the resolved identity in two headers:

    ``X-Owner-Id``  required; every folder and document is scoped to it
    ``X-Tenant-Id`` optional; the school/organisation the owner acts in

Public interface:
    ``require_actor`` returns ActorContext or raises 401.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader

from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

OWNER_HEADER = "X-Owner-Id"
TENANT_HEADER = "X-Tenant-Id"
MAX_IDENTITY_LENGTH = 64

# Declared as security schemes so OpenAPI documents the headers.
_owner_scheme = APIKeyHeader(name=OWNER_HEADER, auto_error=False)
_tenant_scheme = APIKeyHeader(name=TENANT_HEADER, auto_error=False)


@dataclass(frozen=True)
class ActorContext:
    """Resolved identity passed to every service call."""

    owner_id: str
    tenant_id: Optional[str] = None


def require_actor(
    owner_id: Optional[str] = Depends(_owner_scheme),
    tenant_id: Optional[str] = Depends(_tenant_scheme),
) -> ActorContext:
    """Require an owner id and return the caller's ActorContext."""
    owner_id = (owner_id or "").strip()
    if not owner_id:
        raise AuthenticationError(f"Missing {OWNER_HEADER} header")
    if len(owner_id) > MAX_IDENTITY_LENGTH:
        raise AuthenticationError(f"{OWNER_HEADER} exceeds {MAX_IDENTITY_LENGTH} characters")

    tenant_id = (tenant_id or "").strip() or None
    if tenant_id is not None and len(tenant_id) > MAX_IDENTITY_LENGTH:
        raise AuthenticationError(f"{TENANT_HEADER} exceeds {MAX_IDENTITY_LENGTH} characters")

    return ActorContext(owner_id=owner_id, tenant_id=tenant_id)
