"""
Shared aiohttp ClientSession for evidence downloads.

Initialized once during the FastAPI lifespan. The context manager yields the
shared session when available, otherwise creates and closes a temporary one
(covers tests and pre-init calls).

Usage:
    async with http_client.request_session() as sess:
        async with sess.get(url) as response:
            ...
"""

import logging
from contextlib import asynccontextmanager

import aiohttp

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SEC = 30

session: aiohttp.ClientSession | None = None


def _new_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT_SEC))


async def initialize() -> None:
    global session
    session = _new_session()
    logger.info("[STARTUP] Shared HTTP session initialized")


async def close() -> None:
    global session
    if session and not session.closed:
        await session.close()
        session = None
        logger.info("[SHUTDOWN] Shared HTTP session closed")


@asynccontextmanager
async def request_session():
    """Yields the shared session if open, else a temporary one closed on exit."""
    if session and not session.closed:
        yield session
    else:
        tmp = _new_session()
        try:
            yield tmp
        finally:
            await tmp.close()
