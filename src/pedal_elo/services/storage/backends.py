"""Key-value backends for ratings and history.

Three interchangeable backends share one async interface:

- ``ProxyBackend``: remote key-value store behind an HTTP proxy that only
  forwards GET and SET (credentials stay on the proxy side).
- ``DuckDBBackend``: local SQLModel table on DuckDB.
- ``MemoryBackend``: in-process dictionary for tests and dry runs.

Values are JSON documents; every backend stores them serialized.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, create_engine
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pedal_elo.core.config import StorageConfig
from pedal_elo.core.errors import StorageError
from pedal_elo.models import KeyValueEntry

logger = structlog.get_logger()

T = TypeVar("T")


class KeyValueBackend(ABC):
    """Abstract base class for async key-value backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Load the JSON value stored under ``key``.

        Returns:
            Decoded value, or None if the key is missing.

        Raises:
            StorageError: If the backend cannot be read.
        """

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` as JSON under ``key``.

        Raises:
            StorageError: If the backend rejects the write.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


class MemoryBackend(KeyValueBackend):
    """In-memory backend for tests and dry runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {k: json.dumps(v) for k, v in (initial or {}).items()}
        self.writes: list[tuple[str, Any]] = []

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)
        self.writes.append((key, json.loads(self._data[key])))


class ProxyBackend(KeyValueBackend):
    """Key-value store reached through a GET/SET-only HTTP proxy.

    Protocol:
        GET  {url}?key=<key>                -> {"result": "<json>" | null}
        POST {url}  ["SET", key, "<json>"]  -> upstream response
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize proxy backend.

        Args:
            url: Proxy endpoint URL.
            timeout: Request timeout in seconds.
            client: Optional preconfigured HTTP client (used in tests).
        """
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def get(self, key: str) -> Any | None:
        response = await self._request(key, "GET", params={"key": key})
        try:
            result = response.json().get("result")
            return json.loads(result) if result else None
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            raise StorageError(key, f"malformed proxy response: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        await self._request(key, "POST", json=["SET", key, json.dumps(value)])

    async def _request(self, key: str, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._send(method, **kwargs)
        except httpx.TransportError as e:
            raise StorageError(key, str(e)) from e

        if response.is_error:
            raise StorageError(key, f"HTTP {response.status_code}: {response.text[:200]}")
        return response

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(self, method: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying transport failures."""
        logger.debug("proxy_request", method=method)
        return await self.client.request(method, self.url, **kwargs)

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


class DuckDBBackend(KeyValueBackend):
    """Local key-value table persisted with SQLModel on DuckDB."""

    def __init__(self, db_path: str | Path) -> None:
        """Initialize DuckDB database and create tables.

        Args:
            db_path: Path to the DuckDB file (parent directories are created).
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # NullPool avoids holding the DuckDB file lock between operations
        self._engine = create_engine(f"duckdb:///{self.db_path}", poolclass=NullPool)
        SQLModel.metadata.create_all(self._engine)

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run sync SQLModel work inside a Session on a worker thread."""

        def _run() -> T:
            with Session(self._engine) as session:
                return fn(session)

        return await asyncio.to_thread(_run)

    async def get(self, key: str) -> Any | None:
        def _get(session: Session) -> str | None:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry else None

        try:
            raw = await self._run_session(_get)
        except SQLAlchemyError as e:
            raise StorageError(key, str(e)) from e
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)

        def _set(session: Session) -> None:
            entry = session.get(KeyValueEntry, key)
            if entry:
                entry.value = payload
                entry.updated_at = datetime.now(UTC)
            else:
                entry = KeyValueEntry(key=key, value=payload)
            session.add(entry)
            session.commit()

        try:
            await self._run_session(_set)
        except SQLAlchemyError as e:
            raise StorageError(key, str(e)) from e

    async def close(self) -> None:
        self._engine.dispose()


def create_backend(config: StorageConfig, dry_run: bool = False) -> KeyValueBackend:
    """Create the configured key-value backend.

    Args:
        config: Storage configuration.
        dry_run: Use an in-memory backend regardless of config.

    Returns:
        KeyValueBackend instance.
    """
    if dry_run or config.backend == "memory":
        logger.info("using_memory_backend")
        return MemoryBackend()

    if config.backend == "proxy":
        url = config.get_proxy_url()
        logger.info("using_proxy_backend", url=url)
        return ProxyBackend(url, timeout=config.timeout)

    logger.info("using_duckdb_backend", path=config.db_path)
    return DuckDBBackend(config.db_path)
