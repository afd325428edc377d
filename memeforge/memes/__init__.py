"""Meme workflow: frustrations in, captioned meme out."""

from memeforge.memes.models import MemeArtifact, MemeError
from memeforge.memes.workflow import (
    PIPELINE_NAME,
    build_meme_pipeline,
    build_services,
    create_meme,
    pipeline_from_settings,
    to_meme_error,
)

__all__ = [
    "PIPELINE_NAME",
    "MemeArtifact",
    "MemeError",
    "build_meme_pipeline",
    "build_services",
    "create_meme",
    "pipeline_from_settings",
    "to_meme_error",
]
