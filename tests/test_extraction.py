"""Tests for extraction output parsing and the OpenRouter client."""

import json

import httpx
import pytest

from pickboard.core.errors import ConfigError, ExtractionError
from pickboard.models.extraction import ExtractionBatch, ExtractionInvalid, parse_extraction
from pickboard.models.types import PickSide, PickType
from pickboard.services.extraction import OpenRouterExtractor, build_prompt, slice_json_array

from conftest import make_game

GOOD = {
    "game": {"homeTeam": "KC", "awayTeam": "BUF", "week": 5, "season": 2024},
    "pickType": "spread",
    "pickSide": "home",
    "line": -2.5,
    "confidence": 0.7,
    "quote": "Give me the Chiefs at home.",
}


class TestParseExtraction:
    """Schema validation of the model's JSON array."""

    def test_valid_batch(self):
        out = parse_extraction([GOOD, {**GOOD, "pickType": "total", "pickSide": "over", "line": 47.5}])
        assert isinstance(out, ExtractionBatch)
        assert out.ok
        assert [p.pickType for p in out.picks] == [PickType.SPREAD, PickType.TOTAL]
        assert out.picks[1].pickSide is PickSide.OVER

    def test_empty_array_is_valid(self):
        out = parse_extraction([])
        assert out.ok and out.picks == []

    def test_non_list_rejected(self):
        out = parse_extraction({"picks": [GOOD]})
        assert isinstance(out, ExtractionInvalid)
        assert not out.ok

    def test_one_bad_item_rejects_whole_batch(self):
        bad = {**GOOD, "pickSide": "over"}
        out = parse_extraction([GOOD, bad])
        assert isinstance(out, ExtractionInvalid)
        assert "item 1" in out.reason

    def test_confidence_out_of_range(self):
        assert not parse_extraction([{**GOOD, "confidence": 1.5}]).ok

    def test_missing_team(self):
        assert not parse_extraction([{**GOOD, "game": {"homeTeam": "", "awayTeam": "BUF"}}]).ok


class TestSliceJsonArray:
    def test_code_fence_and_prose(self):
        content = "Sure! Here you go:\n```json\n[{\"a\": 1}]\n```\nThanks."
        assert slice_json_array(content) == [{"a": 1}]

    def test_no_array(self):
        with pytest.raises(ValueError):
            slice_json_array("no picks found")


class TestBuildPrompt:
    def test_schedule_and_truncation(self):
        prompt = build_prompt("x" * 10000, [make_game()])
        assert "BUF (Buffalo Bills) at KC (Kansas City Chiefs)" in prompt
        assert "spread: -2.5" in prompt
        assert "x" * 6000 in prompt
        assert "x" * 6001 not in prompt


def _chat_transport(content=None, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer key"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        if status != 200:
            return httpx.Response(status, text="upstream down")
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler)


class TestOpenRouterExtractor:
    @pytest.mark.asyncio
    async def test_extract_valid(self):
        ex = OpenRouterExtractor("key", "test-model", transport=_chat_transport(json.dumps([GOOD])))
        out = await ex.extract("Chiefs over Bills", [make_game()])
        assert out.ok
        assert out.picks[0].game.homeTeam == "KC"

    @pytest.mark.asyncio
    async def test_garbage_output_is_invalid_not_raised(self):
        ex = OpenRouterExtractor("key", "test-model", transport=_chat_transport("I could not find any picks."))
        out = await ex.extract("text", [make_game()])
        assert isinstance(out, ExtractionInvalid)

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        ex = OpenRouterExtractor("key", "test-model", transport=_chat_transport(status=502))
        with pytest.raises(ExtractionError):
            await ex.extract("text", [make_game()])

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigError):
            await OpenRouterExtractor(None, "test-model").extract("text", [make_game()])
