from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Protocol


class HttpxResponseProtocol(Protocol):
    status_code: int
    headers: Mapping[str, str]
    content: bytes


class HttpxStreamResponseProtocol(Protocol):
    status_code: int
    headers: Mapping[str, str]

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...


class HttpxAsyncClientProtocol(Protocol):
    async def request(self, method: str, url: str, **kwargs: object) -> HttpxResponseProtocol: ...

    def stream(self, method: str, url: str, **kwargs: object) -> AsyncContextManager[HttpxStreamResponseProtocol]: ...


class HttpxAsyncBackend:
    """Transport over an ``httpx.AsyncClient``."""

    def __init__(self, client: HttpxAsyncClientProtocol) -> None:
        self._client = client

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: bytes | None,
        timeout: float | None,
    ) -> tuple[int, dict[str, str], bytes]:
        response = await self._client.request(
            method=method,
            url=url,
            headers=headers,
            content=body,
            timeout=timeout,
        )
        return response.status_code, {str(k): str(v) for k, v in response.headers.items()}, response.content

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: bytes | None,
        timeout: float | None,
    ) -> AsyncIterator[tuple[int, dict[str, str], AsyncIterator[bytes]]]:
        async with self._client.stream(
            method=method,
            url=url,
            headers=headers,
            content=body,
            timeout=timeout,
        ) as response:
            yield (
                response.status_code,
                {str(k): str(v) for k, v in response.headers.items()},
                response.aiter_bytes(),
            )
