"""Async repository client with retries and streaming downloads."""

from __future__ import annotations

import asyncio
import os
import uuid
from pathlib import Path

import httpx
import structlog

from mvnresolve.exceptions import ArtifactNotFoundError, FetchError

log = structlog.get_logger("mvnresolve.engine")

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 0.5  # seconds
_CHUNK_SIZE = 64 * 1024
_USER_AGENT = "mvnresolve/0.1"


class RepositoryClient:
    """Thin async wrapper around httpx for fetching files from Maven repositories."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_retries: int = _MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._max_retries = max(max_retries, 1)
        self._client = httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RepositoryClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def download(self, url: str, dest: Path) -> Path:
        """Stream *url* into *dest*.

        The body is written to a temporary sibling and renamed into place, so
        *dest* either does not exist or holds a complete file.

        Raises :class:`ArtifactNotFoundError` on 404 and :class:`FetchError`
        on any other failure once retries are exhausted.
        """
        last_exc: FetchError | None = None
        for attempt in range(self._max_retries):
            try:
                async with self._client.stream("GET", url) as resp:
                    if resp.status_code == 404:
                        raise ArtifactNotFoundError(url)
                    if resp.status_code < 400:
                        await self._write_stream(resp, dest)
                        return dest
                    if resp.status_code < 500:
                        raise FetchError(url, f"HTTP {resp.status_code}")

                    log.warning(
                        "http.server_error",
                        url=url,
                        status=resp.status_code,
                        attempt=attempt + 1,
                        max_retries=self._max_retries,
                    )
                    last_exc = FetchError(url, f"HTTP {resp.status_code}")
            except httpx.TimeoutException:
                log.warning(
                    "http.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                )
                last_exc = FetchError(url, "timeout")
            except httpx.TransportError as exc:
                log.warning(
                    "http.transport_error",
                    url=url,
                    error=str(exc),
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                )
                last_exc = FetchError(url, str(exc) or exc.__class__.__name__)

            if attempt < self._max_retries - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── internal ───────────────────────────────────────────────────────────

    @staticmethod
    async def _write_stream(response: httpx.Response, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(f"{dest.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            with open(tmp, "wb") as fh:
                async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                    fh.write(chunk)
            os.replace(tmp, dest)
        finally:
            if tmp.exists():
                tmp.unlink()
