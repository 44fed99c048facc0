from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import AppError, KeyValidationError
from app.core.logging import configure_logging, get_logger
from app.db.session import engine
from app.keys.router import key_router, router as keys_router
from app.sync.notifier import create_notifier

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level, json_output=settings.log_json)
    app.state.notifier = await create_notifier()
    logger.info("startup", resync_enabled=settings.resync_enabled)
    yield
    await app.state.notifier.close()
    await engine.dispose()


app = FastAPI(
    title="SSH Key Registry",
    version="1.0.0",
    description="User and deploy SSH keys for gitolite-managed repositories.",
    lifespan=lifespan,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    content: dict = {"detail": exc.message}
    if isinstance(exc, KeyValidationError):
        content["errors"] = exc.messages()
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(keys_router)
app.include_router(key_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "1.0.0"}
