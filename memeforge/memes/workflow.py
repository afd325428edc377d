"""Assemble the meme pipeline and translate its results for end users."""

from __future__ import annotations

import httpx

from memeforge.config import Credentials, Settings
from memeforge.memes.models import MemeArtifact, MemeError
from memeforge.memes.steps import (
    EXTRACT_FRUSTRATIONS,
    FIND_BASE_MEME,
    GENERATE_CAPTIONS,
    GENERATE_MEME,
    extract_frustrations_step,
    find_base_meme_step,
    generate_captions_step,
    generate_meme_step,
)
from memeforge.pipeline.runner import Failure, FailureReason, Pipeline, Success
from memeforge.services.generation import StructuredGenerator
from memeforge.services.http import ServiceAdapter
from memeforge.services.imgflip import ImgflipClient

PIPELINE_NAME = "meme-generator"

_STAGE_SUBJECTS = {
    EXTRACT_FRUSTRATIONS: "the frustration analysis",
    FIND_BASE_MEME: "the template search results",
    GENERATE_CAPTIONS: "the generated captions",
    GENERATE_MEME: "the rendered meme",
}


def build_meme_pipeline(
    generator: StructuredGenerator,
    imgflip: ImgflipClient,
    *,
    max_templates: int = 10,
) -> Pipeline:
    """Return a fresh four-step pipeline bound to the given services."""
    return Pipeline(
        PIPELINE_NAME,
        [
            extract_frustrations_step(generator),
            find_base_meme_step(imgflip, max_templates=max_templates),
            generate_captions_step(generator),
            generate_meme_step(imgflip),
        ],
    )


def build_services(
    settings: Settings,
    credentials: Credentials,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[StructuredGenerator, ImgflipClient]:
    retry = settings.retry.to_policy()
    generator = StructuredGenerator(
        settings.generation.model,
        timeout=settings.generation.timeout_seconds,
        retry=retry,
        api_key=credentials.generation_api_key,
        base_url=settings.generation.base_url,
        system_prompt=settings.generation.system_prompt,
    )
    adapter = ServiceAdapter(
        settings.imgflip.base_url,
        name="Imgflip",
        timeout=settings.imgflip.timeout_seconds,
        retry=retry,
        transport=transport,
    )
    imgflip = ImgflipClient(
        adapter,
        username=credentials.imgflip_username,
        password=credentials.imgflip_password,
    )
    return generator, imgflip


def pipeline_from_settings(
    settings: Settings,
    credentials: Credentials,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Pipeline:
    generator, imgflip = build_services(settings, credentials, transport=transport)
    return build_meme_pipeline(generator, imgflip, max_templates=settings.max_templates)


def to_meme_error(failure: Failure) -> MemeError:
    """Phrase a pipeline failure for the person who asked for the meme."""
    subject = _STAGE_SUBJECTS.get(failure.step_name, f"the {failure.step_name} stage")
    if failure.reason == FailureReason.INVALID_INPUT:
        message = "Please describe what is frustrating you in a few words."
    elif failure.reason == FailureReason.INVALID_OUTPUT:
        message = f"We couldn't parse {subject}, please try again."
    else:
        message = f"Something went wrong while producing {subject}: {failure.detail}."
    return MemeError(
        stage=failure.step_name,
        reason=failure.reason.value,
        message=message,
        detail=failure.detail,
        run_id=failure.run_id,
    )


def to_meme_artifact(success: Success) -> MemeArtifact:
    out = success.output
    return MemeArtifact(
        image_url=out["imageUrl"],
        page_url=out["pageUrl"],
        template_id=out["template"]["id"],
        template_name=out["template"]["name"],
        top_text=out["topText"],
        bottom_text=out["bottomText"],
        run_id=success.run_id,
    )


async def create_meme(text: str, pipeline: Pipeline) -> MemeArtifact | MemeError:
    """Run *pipeline* on the user's text and return the meme or a friendly error."""
    result = await pipeline.run({"userInput": text})
    if isinstance(result, Failure):
        return to_meme_error(result)
    return to_meme_artifact(result)
