"""The four steps of the meme workflow.

Each factory closes over the service it needs and returns a :class:`Step`.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from memeforge._log import get_logger
from memeforge.errors import StepError
from memeforge.memes import prompts
from memeforge.memes.shapes import (
    CAPTION_CHOICE,
    CAPTIONS,
    FRUSTRATIONS,
    MEME,
    MEME_REQUEST,
    TEMPLATE_CANDIDATES,
)
from memeforge.pipeline.step import Step, step
from memeforge.services.generation import StructuredGenerator
from memeforge.services.imgflip import ImgflipClient

logger = get_logger("memes.steps")

EXTRACT_FRUSTRATIONS = "extract-frustrations"
FIND_BASE_MEME = "find-base-meme"
GENERATE_CAPTIONS = "generate-captions"
GENERATE_MEME = "generate-meme"


def _clean_labels(labels: list[str]) -> list[str]:
    """Normalize to kebab-case, dropping blanks and duplicates (order kept)."""
    cleaned: list[str] = []
    for label in labels:
        norm = "-".join(label.strip().lower().split())
        if norm and norm not in cleaned:
            cleaned.append(norm)
    return cleaned


def _has_two_boxes(template: Any) -> bool:
    if not isinstance(template, dict):
        return True  # left for the output shape to reject
    boxes = template.get("boxCount")
    if isinstance(boxes, (int, float)) and not isinstance(boxes, bool):
        return boxes >= 2
    return True


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_frustrations_step(generator: StructuredGenerator) -> Step:
    @step(EXTRACT_FRUSTRATIONS, input=MEME_REQUEST, output=FRUSTRATIONS)
    async def extract_frustrations(context: dict[str, Any]) -> dict[str, Any]:
        """Name the frustrations behind the user's text."""
        text = context["userInput"].strip()
        if not text:
            raise StepError("input text is empty")

        analysis = await generator.generate(
            text,
            FRUSTRATIONS,
            instructions=prompts.EXTRACT_FRUSTRATIONS,
            output_name="FrustrationAnalysis",
        )
        frustrations = _clean_labels(analysis["frustrations"])
        if not frustrations:
            raise StepError("no frustrations could be extracted from the input")
        logger.debug("Extracted frustrations: %s", ", ".join(frustrations))
        return {"frustrations": frustrations, "message": analysis["message"].strip()}

    return extract_frustrations


def find_base_meme_step(imgflip: ImgflipClient, *, max_templates: int = 10) -> Step:
    @step(FIND_BASE_MEME, input=FRUSTRATIONS, output=TEMPLATE_CANDIDATES)
    async def find_base_meme(context: dict[str, Any]) -> dict[str, Any]:
        """Look up popular templates with room for a top and bottom caption."""
        templates = await imgflip.list_templates()
        candidates = [t for t in templates if _has_two_boxes(t)][:max_templates]
        if not candidates:
            raise StepError("no meme templates with two text boxes are available")
        return {
            "frustrations": context["frustrations"],
            "message": context["message"],
            "templates": candidates,
        }

    return find_base_meme


def generate_captions_step(generator: StructuredGenerator) -> Step:
    @step(GENERATE_CAPTIONS, input=TEMPLATE_CANDIDATES, output=CAPTIONS)
    async def generate_captions(context: dict[str, Any]) -> dict[str, Any]:
        """Choose a template and write its top and bottom captions."""
        templates = context["templates"]
        if not templates:
            raise StepError("no candidate templates to caption")

        choice = await generator.generate(
            prompts.captions_prompt(context["frustrations"], context["message"], templates),
            CAPTION_CHOICE,
            instructions=prompts.GENERATE_CAPTIONS,
            output_name="CaptionChoice",
        )
        top_text = choice["topText"].strip()
        bottom_text = choice["bottomText"].strip()
        if not top_text or not bottom_text:
            raise StepError("the model returned an empty caption")

        by_id = {t["id"]: t for t in templates}
        template = by_id.get(choice["templateId"].strip())
        if template is None:
            template = templates[0]
            logger.warning(
                "Model chose unknown template '%s'; using '%s'",
                choice["templateId"],
                template["name"],
            )
        return {
            "template": {"id": template["id"], "name": template["name"]},
            "topText": top_text,
            "bottomText": bottom_text,
        }

    return generate_captions


def generate_meme_step(imgflip: ImgflipClient) -> Step:
    @step(GENERATE_MEME, input=CAPTIONS, output=MEME)
    async def generate_meme(context: dict[str, Any]) -> dict[str, Any]:
        """Render the captions onto the chosen template."""
        template = context["template"]
        rendered = await imgflip.caption(
            template["id"], [context["topText"], context["bottomText"]]
        )
        for key in ("imageUrl", "pageUrl"):
            value = rendered.get(key)
            if isinstance(value, str) and not _is_http_url(value):
                raise StepError(f"render service returned a malformed {key}")
        return {
            "template": {"id": template["id"], "name": template["name"]},
            "topText": context["topText"],
            "bottomText": context["bottomText"],
            "imageUrl": rendered.get("imageUrl"),
            "pageUrl": rendered.get("pageUrl"),
        }

    return generate_meme
