"""Seed loader: fetch an initial export envelope from a file or an http(s) URL."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import httpx

from campus_planner.core.config import settings


logger = logging.getLogger(__name__)

SeedLoader = Callable[[], Awaitable[dict[str, Any] | None]]


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


async def load_seed(
    source: str | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any] | None:
    """Load a seed payload.

    Args:
        source: File path or http(s) URL; defaults to the configured seed source
        timeout: Fetch timeout in seconds for URLs
        transport: Optional httpx transport (used by tests)

    Returns:
        The parsed JSON object, or None when there is no usable seed
    """
    source = source or settings.seed_source
    if not source:
        return None

    if _is_url(source):
        return await _fetch_seed(source, timeout=timeout or settings.seed_fetch_timeout_seconds, transport=transport)
    return await _read_seed_file(Path(source).expanduser())


async def _fetch_seed(
    url: str,
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None,
) -> dict[str, Any] | None:
    """Internal: GET the seed URL and parse the JSON body."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            return _as_object(response.json(), source=url)

    except httpx.HTTPStatusError as e:
        logger.warning("Seed fetch HTTP error", extra={"url": url, "status": e.response.status_code})
    except httpx.RequestError as e:
        logger.warning("Seed fetch connection error", extra={"url": url, "error": str(e)})
    except ValueError as e:
        logger.warning("Seed response is not valid JSON", extra={"url": url, "error": str(e)})
    return None


async def _read_seed_file(path: Path) -> dict[str, Any] | None:
    """Internal: read and parse a seed file without blocking the event loop."""
    try:
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except FileNotFoundError:
        logger.info("No seed file found", extra={"path": str(path)})
        return None
    except OSError as e:
        logger.warning("Seed file could not be read", extra={"path": str(path), "error": str(e)})
        return None

    try:
        return _as_object(json.loads(text), source=str(path))
    except json.JSONDecodeError as e:
        logger.warning("Seed file is not valid JSON", extra={"path": str(path), "error": str(e)})
        return None


def _as_object(payload: Any, *, source: str) -> dict[str, Any] | None:
    if not isinstance(payload, dict):
        logger.warning("Seed payload is not an object", extra={"source": source})
        return None
    return payload


def make_seed_loader(
    source: str | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SeedLoader:
    """Bind a seed source into a zero-argument loader for StateHub.initialize()."""

    async def loader() -> dict[str, Any] | None:
        return await load_seed(source, timeout=timeout, transport=transport)

    return loader
