"""
handlers/resource_handler.py
----------------------------
Method-polymorphic CRUD handler shared by every resource.

Each request runs exactly one branch:

    GET     list all rows              200 {<collection>: rows}
    POST    insert body[<item>]        201 {<item>: row}
    PUT     update row <id> with body  200 {<item>: row}
    DELETE  delete row <id>            200 {message: "<Label> deleted"}
    other                              405 {error: "Method not allowed"}

Any error reported by the database becomes a 500 carrying the store's
message verbatim. PUT/DELETE without an id in the path answer 400 before
touching the database.
"""

import json
from typing import Any, Awaitable, Callable, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from db.client import DatabaseClient, QueryResult
from models.resource import Resource
from repositories.resource_repo import ResourceRepository
from utils.logger import get_logger

logger = get_logger(__name__)

METHOD_NOT_ALLOWED = {"error": "Method not allowed"}
INVALID_JSON = {"error": "Invalid JSON body"}


class InvalidBody(Exception):
    """The request body is not valid JSON."""


# ── Path parsing ──────────────────────────────────────────

RECORD_PATH_PARAM = "record_path"


def extract_record_id(path: str) -> Optional[str]:
    """
    Return the last '/'-delimited segment of `path`, or None if it is empty.

    The segment is returned verbatim: it is neither URL-decoded nor
    validated. A trailing slash therefore means "no id".
    """
    segment = path.rsplit("/", 1)[-1]
    return segment or None


def request_path(request: Request) -> str:
    """The raw request path as sent by the client, without the query string."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return request.url.path


def _record_id(request: Request) -> Optional[str]:
    # The bare collection route ('/characters') carries no id segment at all
    if RECORD_PATH_PARAM not in request.path_params:
        return None
    return extract_record_id(request_path(request))


async def read_json_body(request: Request) -> Any:
    """
    Parse the request body as JSON.

    Returns None for an empty body.

    Raises:
        InvalidBody: If the body is present but not valid JSON.
    """
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise InvalidBody(str(e)) from e


# ── Responses ─────────────────────────────────────────────

def _json(status_code: int, content: Any) -> JSONResponse:
    # Direct Postgres rows can hold datetime, UUID and Decimal values
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _error_response(resource: Resource, result: QueryResult) -> JSONResponse:
    logger.error(f"{resource.table}: database error: {result.error.message}")
    return _json(500, {"error": result.error.message})


def _first_row(data: Any) -> Any:
    if isinstance(data, list):
        return data[0] if data else None
    return data


# ── Branches ──────────────────────────────────────────────

async def _list(request: Request, resource: Resource, repo: ResourceRepository) -> JSONResponse:
    result = await run_in_threadpool(repo.list_all)
    if result.error:
        return _error_response(resource, result)
    return _json(200, {resource.collection_key: result.data or []})


async def _create(request: Request, resource: Resource, repo: ResourceRepository) -> JSONResponse:
    body = await read_json_body(request)
    record = body.get(resource.item_key) if isinstance(body, dict) else None
    logger.debug(f"POST {resource.item_key}: {record}")

    result = await run_in_threadpool(repo.create, record)
    if result.error:
        return _error_response(resource, result)
    return _json(201, {resource.item_key: _first_row(result.data)})


async def _delete(request: Request, resource: Resource, repo: ResourceRepository) -> JSONResponse:
    record_id = _record_id(request)
    if record_id is None:
        return _json(400, {"error": resource.missing_id_message})

    result = await run_in_threadpool(repo.delete, record_id)
    if result.error:
        return _error_response(resource, result)
    logger.info(f"Deleted {resource.item_key} {record_id}")
    return _json(200, {"message": resource.deleted_message})


async def _update(request: Request, resource: Resource, repo: ResourceRepository) -> JSONResponse:
    record_id = _record_id(request)
    if record_id is None:
        return _json(400, {"error": resource.missing_id_message})

    # Written through as-is: no field whitelist
    patch = await read_json_body(request)

    result = await run_in_threadpool(repo.update, record_id, patch)
    if result.error:
        return _error_response(resource, result)
    return _json(200, {resource.item_key: _first_row(result.data)})


Branch = Callable[[Request, Resource, ResourceRepository], Awaitable[JSONResponse]]

METHOD_HANDLERS: dict[str, Branch] = {
    "GET": _list,
    "POST": _create,
    "DELETE": _delete,
    "PUT": _update,
}


# ── Entry point ───────────────────────────────────────────

async def handle_resource_request(
    request: Request, resource: Resource, db: DatabaseClient
) -> JSONResponse:
    """
    Dispatch one request for `resource` on its HTTP method.

    Args:
        request: The inbound request.
        resource: Which resource the route serves.
        db: The database client built at startup.

    Returns:
        The JSON response for the branch that ran.
    """
    handler = METHOD_HANDLERS.get(request.method.upper())
    if handler is None:
        logger.info(f"{request.method} {resource.path}: method not allowed")
        return _json(405, METHOD_NOT_ALLOWED)

    logger.info(f"{request.method} {request_path(request)}")
    try:
        return await handler(request, resource, ResourceRepository(db, resource))
    except InvalidBody as e:
        logger.warning(f"{request.method} {resource.path}: invalid JSON body: {e}")
        return _json(400, INVALID_JSON)
