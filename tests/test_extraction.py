"""Tests for the field extractors."""

import asyncio
import json
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from chatbooking.services.extraction import (
    LLMFieldExtractor,
    PatternFieldExtractor,
    get_field_extractor,
)

TODAY = date(2030, 3, 3)


def mock_client(content=None, side_effect=None):
    """OpenAI client whose chat completion returns the given content."""
    client = MagicMock()
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestLLMFieldExtractor:

    async def test_returns_cleaned_fields(self):
        client = mock_client(json.dumps({
            "service_name": "Haircut",
            "date": "2030-03-04",
            "time": "3pm",
            "customer_name": "Jane Doe",
            "customer_phone": "+1 555 123 4567",
        }))
        extractor = LLMFieldExtractor(client=client, timeout=1)

        fields = await extractor.extract("haircut tomorrow 3pm", {}, [], TODAY)

        assert fields == {
            "service_name": "Haircut",
            "date": "2030-03-04",
            "time": "15:00",
            "customer_name": "Jane Doe",
            "customer_phone": "+15551234567",
        }

    async def test_nulls_and_unparsable_values_are_dropped(self):
        client = mock_client(json.dumps({
            "service_name": None,
            "date": "someday",
            "time": "null",
            "customer_name": "",
            "customer_phone": "12",
            "extra": "ignored",
        }))

        fields = await LLMFieldExtractor(client=client, timeout=1).extract("hello", {}, [], TODAY)

        assert fields == {}

    async def test_relative_date_is_normalized(self):
        client = mock_client(json.dumps({"date": "tomorrow"}))

        fields = await LLMFieldExtractor(client=client, timeout=1).extract("tomorrow", {}, [], TODAY)

        assert fields == {"date": "2030-03-04"}

    async def test_sends_recent_history_and_message(self):
        client = mock_client(json.dumps({}))
        history = [{"role": "user", "content": f"m{i}"} for i in range(5)]

        await LLMFieldExtractor(client=client, timeout=1, history_limit=2).extract("latest", {}, history, TODAY)

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert [m["content"] for m in messages[1:]] == ["m3", "m4", "latest"]
        assert client.chat.completions.create.call_args.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
    async def test_bad_content_yields_no_fields(self, content):
        fields = await LLMFieldExtractor(client=mock_client(content), timeout=1).extract("hi", {}, [], TODAY)

        assert fields == {}

    async def test_api_error_yields_no_fields(self):
        client = mock_client(side_effect=OpenAIError("service unavailable"))

        fields = await LLMFieldExtractor(client=client, timeout=1).extract("hi", {}, [], TODAY)

        assert fields == {}

    async def test_timeout_yields_no_fields(self):
        async def slow(**kwargs):
            await asyncio.sleep(5)

        client = mock_client(side_effect=slow)

        fields = await LLMFieldExtractor(client=client, timeout=0.05).extract("hi", {}, [], TODAY)

        assert fields == {}


class TestPatternFieldExtractor:

    async def test_reads_date_time_and_name(self):
        fields = await PatternFieldExtractor().extract(
            "My name is Jane Doe, tomorrow at 10:30am works", {}, [], TODAY
        )

        assert fields == {"date": "2030-03-04", "time": "10:30", "customer_name": "Jane Doe"}

    async def test_phone_like_dates_are_not_taken_as_phone(self):
        fields = await PatternFieldExtractor().extract("2030-03-04", {}, [], TODAY)

        assert fields == {"date": "2030-03-04"}

    async def test_reads_phone_beside_a_date(self):
        fields = await PatternFieldExtractor().extract("tomorrow at 10:00, 555 123 4567", {}, [], TODAY)

        assert fields == {"date": "2030-03-04", "time": "10:00", "customer_phone": "5551234567"}


def test_pattern_extractor_without_api_key():
    assert isinstance(get_field_extractor(), PatternFieldExtractor)
