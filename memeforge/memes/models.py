"""User-facing result models for the meme workflow."""

from __future__ import annotations

from pydantic import BaseModel


class MemeArtifact(BaseModel):
    image_url: str
    page_url: str
    template_id: str
    template_name: str
    top_text: str
    bottom_text: str
    run_id: str = ""


class MemeError(BaseModel):
    stage: str
    reason: str
    message: str
    detail: str = ""
    run_id: str = ""
