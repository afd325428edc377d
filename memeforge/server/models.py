"""Pydantic models for the meme HTTP API wire format."""

from __future__ import annotations

from pydantic import BaseModel, Field


class MemeRequest(BaseModel):
    text: str = Field(max_length=4000)


class ErrorBody(BaseModel):
    message: str
    type: str
    code: int
