# platform_connect/main.py
import logging
import os
import uvicorn
from fastapi import FastAPI
from platform_connect.config import LOG_LEVEL
from platform_connect.routers.oauth_router import router as oauth_router
from platform_connect.routers.connections_router import router as connections_router
from platform_connect.infrastructure.database import init_db
from platform_connect.middleware.logging import RequestIdMiddleware
import structlog


def resolve_log_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    # getLevelName answers "Level FOO" for names it does not know
    return level if isinstance(level, int) else logging.INFO


def configure_structlog():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(LOG_LEVEL)),
        context_class=dict,
    )


configure_structlog()
logger = structlog.get_logger()

app = FastAPI(title="Platform Connect")

app.add_middleware(RequestIdMiddleware)

app.include_router(oauth_router)
app.include_router(connections_router)


@app.get("/health")
async def health():
    return {"ok": True}


@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("app_startup")


if __name__ == "__main__":
    uvicorn.run("platform_connect.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
