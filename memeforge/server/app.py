"""Starlette application serving the meme pipeline over HTTP."""

from __future__ import annotations

import json

import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from memeforge._log import get_logger
from memeforge.memes.models import MemeError
from memeforge.memes.workflow import create_meme
from memeforge.pipeline.runner import FailureReason, Pipeline
from memeforge.server.models import ErrorBody, MemeRequest

logger = get_logger("server")

_BAD_REQUEST = "invalid_request_error"


def _bad_request(message: str) -> JSONResponse:
    body = ErrorBody(message=message, type=_BAD_REQUEST, code=400)
    return JSONResponse({"error": body.model_dump()}, status_code=400)


def _meme_error_response(error: MemeError) -> JSONResponse:
    status = 422 if error.reason == FailureReason.INVALID_INPUT.value else 502
    return JSONResponse({"error": error.model_dump()}, status_code=status)


async def _parse_request(request: Request) -> MemeRequest | JSONResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _bad_request("Request body must be JSON")
    try:
        return MemeRequest.model_validate(payload)
    except ValidationError as e:
        return _bad_request("; ".join(err["msg"] for err in e.errors()))


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "pipeline": request.app.state.pipeline.name})


async def create_meme_endpoint(request: Request) -> JSONResponse:
    parsed = await _parse_request(request)
    if isinstance(parsed, JSONResponse):
        return parsed

    result = await create_meme(parsed.text, request.app.state.pipeline)
    if isinstance(result, MemeError):
        logger.info("Run %s failed at %s (%s)", result.run_id, result.stage, result.reason)
        return _meme_error_response(result)
    return JSONResponse(result.model_dump())


def create_app(pipeline: Pipeline, *, cors_origins: list[str] | None = None) -> Starlette:
    """Build the ASGI app for *pipeline*.

    Requests run concurrently against the one pipeline instance.
    """
    middleware = []
    if cors_origins:
        middleware.append(
            Middleware(
                CORSMiddleware,  # type: ignore[arg-type]
                allow_origins=cors_origins,
                allow_methods=["GET", "POST"],
                allow_headers=["Content-Type"],
            )
        )

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/v1/memes", create_meme_endpoint, methods=["POST"]),
        ],
        middleware=middleware,
    )
    app.state.pipeline = pipeline
    return app


def run_server(
    pipeline: Pipeline,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    cors_origins: list[str] | None = None,
) -> None:
    """Serve *pipeline* with uvicorn until interrupted."""
    uvicorn.run(create_app(pipeline, cors_origins=cors_origins), host=host, port=port)
