import logging

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sentinell.api import live, sessions, system
from sentinell.config import settings
from sentinell.core.errors import SentinellError
from sentinell.integrations import http_client, redis_client
from sentinell.services.session_service import session_store

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    redis_client.initialize()
    await http_client.initialize()
    if not settings.gemini_api_key:
        logger.warning("[STARTUP] GEMINI_API_KEY is not set; analyses will fail with a configuration error")
    yield
    await http_client.close()
    redis_client.close()
    session_store.clear()
    logger.info("[SHUTDOWN] Sessions cleared")


app = FastAPI(title="Sentinell Forensics API", lifespan=lifespan)


# ---- Exception handlers ----
# Error responses always carry CORS headers so the front-end can read the
# JSON body instead of seeing a generic network error.
@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    headers = dict(getattr(exc, "headers", None) or {})
    headers.update(CORS_HEADERS)

    # Drain the request body so early upload rejections don't drop the connection
    try:
        async for _ in request.stream():
            pass
    except Exception as e:
        logger.warning(f"Error draining request stream in exception handler: {e}")

    logger.info(f"[ERROR HANDLER] Returning {exc.status_code} to client: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(SentinellError)
async def sentinell_error_handler(request: Request, exc: SentinellError):
    logger.info(f"[ERROR HANDLER] {type(exc).__name__} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=dict(CORS_HEADERS),
    )


# ---- CORS ----
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(sessions.router)
app.include_router(live.router)
