"""
FastAPI Application for the guardian staking API.

Serves the read endpoints (pool config, user position) and the
instruction builders under /api/staking.
"""

import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import staking
from guardian_stake.errors import StakingError
from guardian_stake.logging_config import setup_logging

logger = logging.getLogger("guardian_stake.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Staking API starting")
    yield
    client = staking._staking_client
    if client is not None and hasattr(client.transport, "close"):
        await client.transport.close()
        staking._staking_client = None
    logger.info("Staking API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_JSON", "false").lower() == "true",
    )

    app = FastAPI(
        title="Guardian Staking API",
        description="Read staking positions and build staking instructions",
        version="0.1.0",
        lifespan=lifespan,
    )

    origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            error = exc.detail
        else:
            error_map = {400: "VAL_001", 404: "SYS_002", 422: "VAL_001"}
            error = {"code": error_map.get(exc.status_code, "SYS_003"), "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content={"error": error})

    @app.exception_handler(StakingError)
    async def staking_exception_handler(request: Request, exc: StakingError):
        logger.warning(f"Unhandled staking error: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    app.include_router(staking.router)

    @app.get("/api/health")
    async def health_check():
        return {"status": "healthy", "timestamp": time.time()}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8766")),
    )
