"""Async lifespan helpers shared by FastAPI services."""

from __future__ import annotations

import asyncio
from typing import Callable

from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.schema import MetaData
import structlog

logger = structlog.get_logger(__name__)


async def ensure_schema(
    *,
    service_name: str,
    metadata: MetaData,
    engine,
    retries: int = 5,
    wait_seconds: float = 1.0,
) -> None:
    """Create missing tables, retrying with exponential backoff while the DB boots."""
    for attempt in range(1, retries + 1):
        try:
            await asyncio.to_thread(metadata.create_all, bind=engine)
            return
        except OperationalError as exc:  # pragma: no cover - only triggered when DB is down
            if attempt == retries:
                logger.error("database_unavailable", service=service_name, attempts=attempt)
                raise
            delay = wait_seconds * (2 ** (attempt - 1))
            logger.warning(
                "database_retry",
                service=service_name,
                attempt=attempt,
                retry_in_seconds=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)


async def run_periodically(
    func: Callable[[], object],
    *,
    interval_seconds: float,
    name: str,
) -> None:
    """Call a blocking ``func`` every ``interval_seconds`` until cancelled.

    Errors are logged and the loop keeps going; the caller owns cancellation.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(func)
        except Exception:
            logger.exception("periodic_task_failed", task=name)


async def cancel_task(task: asyncio.Task | None) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
