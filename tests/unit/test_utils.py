"""Tests for JSON extraction, recency phrases and background tasks."""
import asyncio
import json
from datetime import timedelta

import pytest

from src.utils.json_extractor import extract_json, extract_json_object, extract_json_safe
from src.utils.tasks import drain_background_tasks, fire_and_forget
from src.utils.time_language import recency_phrase
from tests.fakes import NOW


class TestJsonExtractor:
    def test_plain_object(self):
        assert extract_json('{"intent": "HELP"}') == {"intent": "HELP"}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"intent": "LIST_SESSIONS"}\n```\nDone.'
        assert extract_json(text) == {"intent": "LIST_SESSIONS"}

    def test_object_inside_prose(self):
        assert extract_json_object('Sure! {"confidence": "high"} hope that helps') == {"confidence": "high"}

    def test_array(self):
        assert extract_json('result: [1, 2, 3]') == [1, 2, 3]

    def test_repairs(self):
        raw = '{"response": "line one\nline two", "topic": undefined, "items": [1, 2,],}'
        assert extract_json(raw) == {"response": "line one\nline two", "topic": None, "items": [1, 2]}

    def test_invalid_raises(self):
        with pytest.raises(json.JSONDecodeError):
            extract_json("no json here")

    def test_object_required(self):
        with pytest.raises(json.JSONDecodeError):
            extract_json_object("[1, 2]")

    def test_safe_fallback(self):
        assert extract_json_safe("nope", fallback={}) == {}


class TestRecencyPhrase:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(minutes=5), "just now"),
            (timedelta(hours=3), "earlier today"),
            (timedelta(days=1), "yesterday"),
            (timedelta(days=4), "a few days ago"),
            (timedelta(days=9), "last week"),
            (timedelta(days=15), "a couple weeks ago"),
            (timedelta(days=45), "last month"),
            (timedelta(days=400), "some time ago"),
        ],
    )
    def test_phrases(self, delta, expected):
        assert recency_phrase(NOW - delta, now=NOW) == expected


class TestFireAndForget:
    @pytest.mark.asyncio
    async def test_failure_does_not_propagate(self):
        async def boom():
            raise RuntimeError("smtp down")

        task = fire_and_forget(boom(), "invitation_send", session_id="s-1")
        await drain_background_tasks()
        assert task.done()
        assert isinstance(task.exception(), RuntimeError)

    @pytest.mark.asyncio
    async def test_success(self):
        results = []

        async def work():
            await asyncio.sleep(0)
            results.append("done")

        fire_and_forget(work(), "work")
        await drain_background_tasks()
        assert results == ["done"]
