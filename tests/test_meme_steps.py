"""Tests for the four meme workflow steps, run in isolation."""

import httpx
import pytest

from memeforge.errors import NetworkFailure, ServiceFailure, StepError
from memeforge.memes.shapes import (
    CAPTIONS,
    FRUSTRATIONS,
    MEME,
    TEMPLATE_CANDIDATES,
)
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
from memeforge.pipeline.shape import find_violations
from tests.conftest import FakeGenerator, imgflip_handler, make_imgflip

CANDIDATES = {
    "frustrations": ["long-meetings"],
    "message": "Meetings never end on time.",
    "templates": [
        {"id": "181913649", "name": "Drake Hotline Bling", "boxCount": 2},
        {"id": "87743020", "name": "Two Buttons", "boxCount": 3},
    ],
}

CAPTIONED_CONTEXT = {
    "template": {"id": "181913649", "name": "Drake Hotline Bling"},
    "topText": "Ending the meeting on time",
    "bottomText": "Adding one more agenda item",
}


class TestExtractFrustrations:
    @pytest.mark.anyio
    async def test_labels_are_cleaned(self):
        gen = FakeGenerator(
            {
                "FrustrationAnalysis": {
                    "frustrations": ["Long Meetings", "long-meetings", " ", "Time management"],
                    "message": "  Meetings never end on time.  ",
                }
            }
        )
        s = extract_frustrations_step(gen)
        output = await s.execute({"userInput": "meetings run over time"})
        assert output == {
            "frustrations": ["long-meetings", "time-management"],
            "message": "Meetings never end on time.",
        }
        assert find_violations(FRUSTRATIONS, output) == []
        assert gen.calls == [("FrustrationAnalysis", "meetings run over time")]

    @pytest.mark.anyio
    async def test_blank_input_rejected_without_calling_model(self):
        gen = FakeGenerator({})
        with pytest.raises(StepError, match="input text is empty"):
            await extract_frustrations_step(gen).execute({"userInput": "   "})
        assert gen.calls == []

    @pytest.mark.anyio
    async def test_no_frustrations_is_an_error(self):
        gen = FakeGenerator({"FrustrationAnalysis": {"frustrations": [], "message": "All good!"}})
        with pytest.raises(StepError, match="no frustrations could be extracted"):
            await extract_frustrations_step(gen).execute({"userInput": "I love my job"})

    @pytest.mark.anyio
    async def test_service_errors_propagate(self):
        gen = FakeGenerator({"FrustrationAnalysis": NetworkFailure("network timeout")})
        with pytest.raises(NetworkFailure):
            await extract_frustrations_step(gen).execute({"userInput": "x"})

    def test_declared_shapes(self):
        s = extract_frustrations_step(FakeGenerator({}))
        assert s.name == EXTRACT_FRUSTRATIONS
        assert s.output_shape == FRUSTRATIONS
        assert s.description == "Name the frustrations behind the user's text."


class TestFindBaseMeme:
    @pytest.mark.anyio
    async def test_keeps_two_box_templates_and_carries_context(self):
        s = find_base_meme_step(make_imgflip(imgflip_handler()))
        output = await s.execute({"frustrations": ["long-meetings"], "message": "m"})
        assert [t["id"] for t in output["templates"]] == ["181913649", "87743020"]
        assert output["frustrations"] == ["long-meetings"]
        assert output["message"] == "m"
        assert find_violations(TEMPLATE_CANDIDATES, output) == []

    @pytest.mark.anyio
    async def test_caps_candidate_count(self):
        s = find_base_meme_step(make_imgflip(imgflip_handler()), max_templates=1)
        output = await s.execute({"frustrations": ["x"], "message": "m"})
        assert [t["id"] for t in output["templates"]] == ["181913649"]

    @pytest.mark.anyio
    async def test_templates_without_box_count_are_kept(self):
        memes = {"success": True, "data": {"memes": [{"id": "1", "name": "Unknown"}]}}
        s = find_base_meme_step(make_imgflip(imgflip_handler(memes=memes)))
        output = await s.execute({"frustrations": ["x"], "message": "m"})
        assert output["templates"] == [{"id": "1", "name": "Unknown"}]

    @pytest.mark.anyio
    async def test_no_usable_templates(self):
        memes = {
            "success": True,
            "data": {"memes": [{"id": "1", "name": "One box", "box_count": 1}]},
        }
        s = find_base_meme_step(make_imgflip(imgflip_handler(memes=memes)))
        with pytest.raises(StepError, match="no meme templates with two text boxes"):
            await s.execute({"frustrations": ["x"], "message": "m"})

    @pytest.mark.anyio
    async def test_malformed_template_reaches_output_validation(self):
        memes = {"success": True, "data": {"memes": [{"id": 5, "name": "Numeric id"}]}}
        s = find_base_meme_step(make_imgflip(imgflip_handler(memes=memes)))
        output = await s.execute({"frustrations": ["x"], "message": "m"})
        [violation] = find_violations(s.output_shape, output)
        assert violation.path == "templates[0].id"

    @pytest.mark.anyio
    async def test_timeout_surfaces_as_network_failure(self):
        def timeout(request):
            raise httpx.ConnectTimeout("slow", request=request)

        s = find_base_meme_step(make_imgflip(timeout))
        with pytest.raises(NetworkFailure, match="network timeout"):
            await s.execute({"frustrations": ["x"], "message": "m"})

    def test_name(self):
        assert find_base_meme_step(make_imgflip(imgflip_handler())).name == FIND_BASE_MEME


class TestGenerateCaptions:
    @pytest.mark.anyio
    async def test_picks_template_and_strips_text(self):
        gen = FakeGenerator(
            {
                "CaptionChoice": {
                    "templateId": "87743020",
                    "topText": " Leave on time ",
                    "bottomText": "Answer one more email ",
                }
            }
        )
        output = await generate_captions_step(gen).execute(dict(CANDIDATES))
        assert output == {
            "template": {"id": "87743020", "name": "Two Buttons"},
            "topText": "Leave on time",
            "bottomText": "Answer one more email",
        }
        assert find_violations(CAPTIONS, output) == []
        [(name, prompt)] = gen.calls
        assert name == "CaptionChoice"
        assert "long-meetings" in prompt
        assert "87743020: Two Buttons" in prompt

    @pytest.mark.anyio
    async def test_unknown_template_falls_back_to_first(self):
        gen = FakeGenerator(
            {"CaptionChoice": {"templateId": "999", "topText": "a", "bottomText": "b"}}
        )
        output = await generate_captions_step(gen).execute(dict(CANDIDATES))
        assert output["template"] == {"id": "181913649", "name": "Drake Hotline Bling"}

    @pytest.mark.anyio
    async def test_empty_caption_rejected(self):
        gen = FakeGenerator(
            {"CaptionChoice": {"templateId": "181913649", "topText": "  ", "bottomText": "b"}}
        )
        with pytest.raises(StepError, match="empty caption"):
            await generate_captions_step(gen).execute(dict(CANDIDATES))

    @pytest.mark.anyio
    async def test_no_candidates(self):
        gen = FakeGenerator({})
        with pytest.raises(StepError, match="no candidate templates"):
            await generate_captions_step(gen).execute({**CANDIDATES, "templates": []})
        assert gen.calls == []

    def test_name(self):
        assert generate_captions_step(FakeGenerator({})).name == GENERATE_CAPTIONS


class TestGenerateMeme:
    @pytest.mark.anyio
    async def test_renders_and_carries_captions(self):
        s = generate_meme_step(make_imgflip(imgflip_handler()))
        output = await s.execute(dict(CAPTIONED_CONTEXT))
        assert output == {
            **CAPTIONED_CONTEXT,
            "imageUrl": "https://i.imgflip.com/abc123.jpg",
            "pageUrl": "https://imgflip.com/i/abc123",
        }
        assert find_violations(MEME, output) == []
        assert s.name == GENERATE_MEME

    @pytest.mark.anyio
    async def test_malformed_url_rejected(self):
        captioned = {"success": True, "data": {"url": "not a url", "page_url": "x"}}
        s = generate_meme_step(make_imgflip(imgflip_handler(captioned=captioned)))
        with pytest.raises(StepError, match="malformed imageUrl"):
            await s.execute(dict(CAPTIONED_CONTEXT))

    @pytest.mark.anyio
    async def test_missing_url_left_for_output_validation(self):
        captioned = {"success": True, "data": {"page_url": "https://imgflip.com/i/x"}}
        s = generate_meme_step(make_imgflip(imgflip_handler(captioned=captioned)))
        output = await s.execute(dict(CAPTIONED_CONTEXT))
        [violation] = find_violations(MEME, output)
        assert violation.path == "imageUrl"

    @pytest.mark.anyio
    async def test_render_rejection(self):
        captioned = {"success": False, "error_message": "Template not found"}
        s = generate_meme_step(make_imgflip(imgflip_handler(captioned=captioned)))
        with pytest.raises(ServiceFailure, match="Template not found"):
            await s.execute(dict(CAPTIONED_CONTEXT))
