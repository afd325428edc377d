"""Imgflip template lookup and caption rendering."""

from __future__ import annotations

from typing import Any

from memeforge._log import get_logger
from memeforge.errors import ServiceFailure
from memeforge.services.http import ServiceAdapter

logger = get_logger("services.imgflip")

IMGFLIP_BASE_URL = "https://api.imgflip.com"

# Shared public account; heavily rate limited, used when no credentials are set.
PUBLIC_USERNAME = "imgflip_hubot"
PUBLIC_PASSWORD = "imgflip_hubot"


def _unwrap(payload: Any, action: str) -> dict[str, Any]:
    """Return the ``data`` object of an Imgflip envelope or raise ServiceFailure."""
    if not isinstance(payload, dict):
        raise ServiceFailure(f"Imgflip returned an unexpected {action} payload")
    if not payload.get("success", False):
        message = payload.get("error_message") or "unknown error"
        raise ServiceFailure(f"Imgflip could not {action}: {message}")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ServiceFailure(f"Imgflip returned an unexpected {action} payload")
    return data


def _normalize_template(raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    template: dict[str, Any] = {"id": raw.get("id"), "name": raw.get("name")}
    if raw.get("url") is not None:
        template["url"] = raw["url"]
    if raw.get("box_count") is not None:
        template["boxCount"] = raw["box_count"]
    return template


class ImgflipClient:
    """Thin client over the two Imgflip endpoints the meme workflow needs.

    Templates are passed through with Imgflip's field values untouched
    (only renamed), so a malformed entry is caught by the calling step's
    output shape rather than silently repaired here.
    """

    def __init__(
        self,
        adapter: ServiceAdapter,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._adapter = adapter
        if username and password:
            self._username, self._password = username, password
        else:
            self._username, self._password = PUBLIC_USERNAME, PUBLIC_PASSWORD

    @property
    def uses_public_account(self) -> bool:
        return self._username == PUBLIC_USERNAME

    async def list_templates(self) -> list[Any]:
        """Popular templates, most popular first."""
        payload = await self._adapter.call("GET", "/get_memes")
        data = _unwrap(payload, "list templates")
        memes = data.get("memes")
        if not isinstance(memes, list):
            raise ServiceFailure("Imgflip returned an unexpected list templates payload")
        return [_normalize_template(m) for m in memes]

    async def caption(self, template_id: str, texts: list[str]) -> dict[str, Any]:
        """Render *texts* onto a template; returns ``{imageUrl, pageUrl}``."""
        if self.uses_public_account:
            logger.warning(
                "Imgflip credentials not configured; using the shared public account "
                "(reduced rate limits)"
            )
        form: dict[str, Any] = {
            "template_id": template_id,
            "username": self._username,
            "password": self._password,
        }
        if len(texts) <= 2:
            for index, text in enumerate(texts):
                form[f"text{index}"] = text
        else:
            for index, text in enumerate(texts):
                form[f"boxes[{index}][text]"] = text

        payload = await self._adapter.call("POST", "/caption_image", data=form)
        data = _unwrap(payload, "render the meme")
        return {"imageUrl": data.get("url"), "pageUrl": data.get("page_url")}
