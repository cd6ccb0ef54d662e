from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import get_token_service, get_user_repository
from app.api.errors import register_exception_handlers
from app.api.routers.admin import router as admin_router
from app.api.routers.auth import router as auth_router
from app.shared.config import get_settings
from app.shared.logging_config import configure_logging


logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Missing token secrets or DATABASE_URL stop the process here instead of on the first request.
    get_token_service()
    get_user_repository()
    logger.info("main: startup cors_origins=%s", ",".join(settings.cors_origins))
    yield


app = FastAPI(title="Leelu AI API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}
