from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.router import api_router
from app.core.config import get_settings
from app.core.db import init_db
from app.core.logging import setup_logging
from app.core.throttle import ThrottleMiddleware

settings = get_settings()
logger = setup_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_db()
    logger.info("%s started (%s) under %s", settings.app_name, settings.app_env, settings.api_root or "/")
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(ThrottleMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_root)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
