"""Instructions sent to the language model by the meme workflow."""

from __future__ import annotations

EXTRACT_FRUSTRATIONS = """\
You read short complaints about work and name what is behind them.
Return 1-5 frustration categories as short kebab-case labels
(for example "time-management", "micromanagement", "tooling") and a
one-sentence, light-hearted message acknowledging the situation.
If the text describes no frustration at all, return an empty list."""

GENERATE_CAPTIONS = """\
You write captions for classic meme templates.
Pick the one candidate template that best fits the frustrations and copy its
id exactly. Write a short top text and bottom text (under 60 characters each)
that are funny, relatable and safe for work."""


def captions_prompt(frustrations: list[str], message: str, templates: list[dict]) -> str:
    candidates = "\n".join(f"- {t['id']}: {t['name']}" for t in templates)
    return (
        f"Frustrations: {', '.join(frustrations)}\n"
        f"Summary: {message}\n\n"
        f"Candidate templates:\n{candidates}"
    )
