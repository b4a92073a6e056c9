"""Request-scoped dependencies for the gateway API."""
from typing import AsyncIterator, Optional

from fastapi import Depends, Header

from ..config import Settings, get_settings
from ..store_client import SpecificationStore


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Extract the caller's bearer credential so it can be forwarded to the store."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_store(
    token: Optional[str] = Depends(bearer_token),
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[SpecificationStore]:
    """One store client per inbound request, closed when the request ends."""
    store = SpecificationStore.from_settings(settings, token=token)
    try:
        yield store
    finally:
        await store.aclose()
