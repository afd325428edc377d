"""Shared test fixtures and helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from memeforge.pipeline.shape import Shape
from memeforge.pipeline.step import Step
from memeforge.services._retry import RetryPolicy
from memeforge.services.http import ServiceAdapter
from memeforge.services.imgflip import ImgflipClient

FAST_RETRY = RetryPolicy(max_retries=2, base_delay=0.0, max_delay=0.0)

POPULAR_MEMES = {
    "success": True,
    "data": {
        "memes": [
            {
                "id": "181913649",
                "name": "Drake Hotline Bling",
                "url": "https://i.imgflip.com/30b1gx.jpg",
                "box_count": 2,
            },
            {
                "id": "87743020",
                "name": "Two Buttons",
                "url": "https://i.imgflip.com/1g8my4.jpg",
                "box_count": 3,
            },
            {
                "id": "129242436",
                "name": "Change My Mind",
                "url": "https://i.imgflip.com/24y43o.jpg",
                "box_count": 1,
            },
        ]
    },
}

CAPTIONED = {
    "success": True,
    "data": {
        "url": "https://i.imgflip.com/abc123.jpg",
        "page_url": "https://imgflip.com/i/abc123",
    },
}


def make_step(
    name: str,
    fn: Callable[[dict[str, Any]], Any] | None = None,
    *,
    input_shape: Shape | None = None,
    output_shape: Shape | None = None,
) -> Step:
    """Build a Step whose execute awaits *fn* (identity by default)."""

    async def execute(context: dict[str, Any]) -> dict[str, Any]:
        if fn is None:
            return context
        return fn(context)

    return Step(
        name=name,
        input_shape=input_shape or Shape(),
        output_shape=output_shape or Shape(),
        execute=execute,
    )


class FakeGenerator:
    """Stands in for StructuredGenerator: returns canned output per output_name."""

    def __init__(self, outputs: dict[str, dict[str, Any]]) -> None:
        self.outputs = outputs
        self.calls: list[tuple[str, str]] = []

    async def generate(
        self,
        prompt: str,
        shape: Shape,
        *,
        instructions: str = "",
        output_name: str = "Output",
    ) -> dict[str, Any]:
        self.calls.append((output_name, prompt))
        value = self.outputs[output_name]
        if isinstance(value, Exception):
            raise value
        return dict(value)


def make_imgflip(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    username: str | None = "user",
    password: str | None = "secret",
    retry: RetryPolicy = FAST_RETRY,
) -> ImgflipClient:
    adapter = ServiceAdapter(
        "https://api.imgflip.test",
        name="Imgflip",
        timeout=1.0,
        retry=retry,
        transport=httpx.MockTransport(handler),
    )
    return ImgflipClient(adapter, username=username, password=password)


def imgflip_handler(
    memes: dict[str, Any] | None = None, captioned: dict[str, Any] | None = None
) -> Callable[[httpx.Request], httpx.Response]:
    """A MockTransport handler answering both Imgflip endpoints."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/get_memes"):
            return httpx.Response(200, json=memes or POPULAR_MEMES)
        if request.url.path.endswith("/caption_image"):
            return httpx.Response(200, json=captioned or CAPTIONED)
        return httpx.Response(404, json={"success": False})

    return handler


@pytest.fixture()
def _caplog_memeforge(caplog):
    """Attach caplog handler to the ``memeforge`` logger so records are captured
    even though ``propagate=False``."""
    root = logging.getLogger("memeforge")
    root.addHandler(caplog.handler)
    yield
    root.removeHandler(caplog.handler)


@pytest.fixture()
def anyio_backend() -> str:
    """The package runs on asyncio; don't parametrize over other installed backends."""
    return "asyncio"
