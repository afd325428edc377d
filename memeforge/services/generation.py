"""Structured generation through a language model, typed by a Shape."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import openai
from pydantic_ai import Agent
from pydantic_ai.exceptions import (
    ModelAPIError,
    ModelHTTPError,
    UnexpectedModelBehavior,
    UserError,
)
from pydantic_ai.models import Model

from memeforge._log import get_logger
from memeforge.errors import NetworkFailure, ServiceFailure
from memeforge.pipeline.shape import Shape
from memeforge.services._retry import RetryPolicy, call_with_retries

logger = get_logger("services.generation")

DEFAULT_MODEL = "openai:gpt-4o-mini"

_TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


def _http_failure(e: ModelHTTPError) -> Exception:
    if e.status_code in _TRANSIENT_STATUS_CODES:
        return NetworkFailure("model service is temporarily unavailable")
    if e.status_code in (401, 403):
        return ServiceFailure("model service rejected the credentials")
    return ServiceFailure("model service rejected the request")


def _api_failure(e: ModelAPIError) -> Exception:
    cause = e.__cause__
    if isinstance(cause, (openai.APITimeoutError, httpx.TimeoutException)):
        return NetworkFailure("network timeout")
    if isinstance(cause, (openai.APIConnectionError, httpx.TransportError)):
        return NetworkFailure("model service is unreachable")
    return ServiceFailure("model service request failed")


class StructuredGenerator:
    """Ask a model for a value that conforms to a Shape.

    *model* is either a ``provider:name`` string or a ready PydanticAI
    ``Model`` (tests pass ``TestModel``). An explicit *api_key* or
    *base_url* routes ``openai`` strings through an OpenAI-compatible
    provider; otherwise the provider resolves its own credentials.
    """

    def __init__(
        self,
        model: str | Model = DEFAULT_MODEL,
        *,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        system_prompt: str = "",
    ) -> None:
        self._model = model
        self._timeout = timeout
        self._retry = retry or RetryPolicy()
        self._api_key = api_key
        self._base_url = base_url
        self._system_prompt = system_prompt

    @property
    def model_name(self) -> str:
        if isinstance(self._model, str):
            return self._model
        return self._model.model_name

    def _build_model(self) -> str | Model:
        if not isinstance(self._model, str):
            return self._model
        provider, _, name = self._model.partition(":")
        if not name:
            provider, name = "openai", provider
        if provider != "openai" or (self._api_key is None and self._base_url is None):
            return self._model

        from pydantic_ai.models.openai import OpenAIChatModel
        from pydantic_ai.providers.openai import OpenAIProvider

        return OpenAIChatModel(
            name, provider=OpenAIProvider(base_url=self._base_url, api_key=self._api_key)
        )

    def _build_agent(self, shape: Shape, output_name: str, instructions: str) -> Agent:
        system_prompt = "\n\n".join(p for p in (self._system_prompt, instructions) if p)
        try:
            return Agent(
                self._build_model(),
                output_type=shape.to_model(output_name),
                system_prompt=system_prompt or (),
            )
        except (UserError, openai.OpenAIError) as e:
            logger.error("Cannot initialise model %s: %s", self.model_name, e)
            raise ServiceFailure("model service credentials are missing or invalid") from e

    async def generate(
        self,
        prompt: str,
        shape: Shape,
        *,
        instructions: str = "",
        output_name: str = "Output",
    ) -> dict[str, Any]:
        """Return a dict produced by the model for *prompt*, shaped like *shape*.

        Fields the model left empty (``None``) are dropped so optional
        fields read as absent.
        """
        agent = self._build_agent(shape, output_name, instructions)

        async def attempt() -> dict[str, Any]:
            return await self._run_once(agent, prompt)

        return await call_with_retries(attempt, self._retry, label=f"generate {output_name}")

    async def _run_once(self, agent: Agent, prompt: str) -> dict[str, Any]:
        try:
            result = await asyncio.wait_for(agent.run(prompt), timeout=self._timeout)
        except TimeoutError as e:
            raise NetworkFailure("network timeout") from e
        except ModelHTTPError as e:
            logger.debug("Model %s answered HTTP %d", e.model_name, e.status_code)
            raise _http_failure(e) from e
        except ModelAPIError as e:
            logger.debug("Model %s request failed: %s", e.model_name, e)
            raise _api_failure(e) from e
        except UnexpectedModelBehavior as e:
            logger.debug("Model output rejected: %s", e)
            raise ServiceFailure("model returned output that does not match the request") from e
        return result.output.model_dump(exclude_none=True)
