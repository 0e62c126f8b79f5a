"""Small httpx helpers shared by the outbound channel services"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


@asynccontextmanager
async def client_scope(client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[httpx.AsyncClient]:
    """Use the given client as-is, or open a temporary one for the block"""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient() as owned:
        yield owned


def safe_json(response: httpx.Response) -> dict:
    """Response body as a dict, or {} when it is not a JSON object"""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
