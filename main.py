"""
main.py
-------
Entry point for the lore CRUD API.

Responsibilities:
    - Build the database client once from configuration.
    - Register the resource routes, health check and CORS policy.
    - Serve the app with uvicorn.
"""

from contextlib import asynccontextmanager
from typing import Iterable, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import config
from db.client import DatabaseClient
from db.factory import create_db_client
from handlers.resource_handler import RECORD_PATH_PARAM, handle_resource_request
from models.resource import RESOURCES, Resource
from utils.logger import get_logger

logger = get_logger(__name__)

# Every method is routed to the handler so unsupported ones get its 405 body
ROUTED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def get_db_client(request: Request) -> DatabaseClient:
    """FastAPI dependency: the client built at startup."""
    return request.app.state.db_client


def _resource_endpoint(resource: Resource):
    async def endpoint(request: Request, db: DatabaseClient = Depends(get_db_client)):
        return await handle_resource_request(request, resource, db)

    endpoint.__name__ = f"{resource.table}_handler"
    return endpoint


def build_router(resources: Iterable[Resource] = RESOURCES) -> APIRouter:
    """Mount each resource on '<path>' and '<path>/<id>'."""
    router = APIRouter()
    for resource in resources:
        endpoint = _resource_endpoint(resource)
        router.add_api_route(
            resource.path, endpoint, methods=ROUTED_METHODS, tags=[resource.table]
        )
        router.add_api_route(
            f"{resource.path}/{{{RECORD_PATH_PARAM}:path}}",
            endpoint,
            methods=ROUTED_METHODS,
            tags=[resource.table],
            include_in_schema=False,
        )
    return router


def create_app(
    db_client: Optional[DatabaseClient] = None,
    api_prefix: str = config.API_PREFIX,
    allowed_origins: Optional[list[str]] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        db_client: Database client to serve requests with. Built from
            configuration when omitted.
        api_prefix: Prefix for the resource routes (e.g. '/api').
        allowed_origins: CORS origins; defaults to config.ALLOWED_ORIGINS.
    """
    client = db_client if db_client is not None else create_db_client()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.db_client.close()
        logger.info("Lore API stopped.")

    app = FastAPI(title="Lore API", lifespan=lifespan)
    app.state.db_client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins if allowed_origins is not None else config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    app.include_router(build_router(), prefix=api_prefix)
    return app


def main() -> None:
    """Build the app and serve it."""
    logger.info("Initializing database client...")
    app = create_app()
    logger.info(f"🚀 Lore API listening on {config.HOST}:{config.PORT}")
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)


if __name__ == "__main__":
    main()
