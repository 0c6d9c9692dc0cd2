"""
Shared-key gate for the HTTP API.

The hosting application authenticates its own users and calls MaskFit
server-to-server, so a shared key in a header is all this service checks.
Keys come from the comma-separated MASKFIT_API_KEYS environment variable,
read on every request; with none set the gate is open.
"""

from __future__ import annotations

import os
import secrets
from typing import Annotated

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from maskfit.config import config

API_KEYS_ENV = "MASKFIT_API_KEYS"

_key_header = APIKeyHeader(name=config.api_key_header, auto_error=False)


def configured_keys() -> frozenset[str]:
    raw = os.environ.get(API_KEYS_ENV, "")
    return frozenset(k.strip() for k in raw.split(",") if k.strip())


def is_valid_key(candidate: str | None, keys: frozenset[str]) -> bool:
    if candidate is None:
        return False
    return any(secrets.compare_digest(candidate, k) for k in keys)


async def require_api_key(
    api_key: Annotated[str | None, Security(_key_header)],
) -> str | None:
    """Dependency: 401 unless the gate is open or the header carries a known key."""
    keys = configured_keys()
    if keys and not is_valid_key(api_key, keys):
        raise HTTPException(401, f"Missing or unknown {config.api_key_header}")
    return api_key
