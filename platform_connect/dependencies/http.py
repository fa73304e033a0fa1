from typing import AsyncGenerator

import httpx

from platform_connect.config import provider_http_timeout


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """One outbound client per request; tests override this with a mock transport."""
    async with httpx.AsyncClient(timeout=provider_http_timeout()) as client:
        yield client
