import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import date

from openai import AsyncOpenAI, OpenAIError

from chatbooking.core.config import settings
from chatbooking.core.exceptions import ExtractionError
from chatbooking.services.field_parsers import parse_date, parse_time, parse_name, parse_phone
from chatbooking.services.llm import extract_json_from_llm

logger = logging.getLogger(__name__)

EXTRACTED_FIELDS = ("service_name", "date", "time", "customer_name", "customer_phone")


class FieldExtractor(ABC):
    """Turns one chat message into a partial set of booking fields."""

    @abstractmethod
    async def extract(
        self,
        message: str,
        current_slot: dict,
        history: list[dict],
        today: date,
    ) -> dict:
        """
        Returns:
            Any of service_name, date (YYYY-MM-DD), time (HH:MM),
            customer_name, customer_phone. Missing fields are omitted.
        """
        raise NotImplementedError


class PatternFieldExtractor(FieldExtractor):
    """No-model extractor built on the deterministic parsers."""

    async def extract(self, message, current_slot, history, today) -> dict:
        fields: dict = {}

        parsed_date = parse_date(message, today)
        if parsed_date:
            fields["date"] = parsed_date.isoformat()

        parsed_time = parse_time(message)
        if parsed_time:
            fields["time"] = "%02d:%02d" % parsed_time

        name = parse_name(message)
        if name:
            fields["customer_name"] = name

        phone = parse_phone(message)
        if phone:
            fields["customer_phone"] = phone

        return fields


EXTRACTION_PROMPT = """You extract appointment booking details from a customer's chat message.
Today is {today} ({weekday}).
Current booking state: {slot}

Respond with a JSON object with exactly these keys, using null when the message does not state the value:
{{
  "service_name": "name of the service the customer wants, or null",
  "date": "requested date as YYYY-MM-DD, or null",
  "time": "requested time as 24-hour HH:MM, or null",
  "customer_name": "customer's name, or null",
  "customer_phone": "customer's phone number, or null"
}}
Only extract what the latest customer message says. Never invent values."""


class LLMFieldExtractor(FieldExtractor):
    """Field extraction through an OpenAI chat model with a hard timeout."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        timeout: float | None = None,
        history_limit: int | None = None,
        model: str | None = None,
    ):
        self.client = client
        self.timeout = timeout if timeout is not None else settings.EXTRACTION_TIMEOUT_SECONDS
        self.history_limit = history_limit if history_limit is not None else settings.EXTRACTION_HISTORY_LIMIT
        self.model = model

    async def extract(self, message, current_slot, history, today) -> dict:
        try:
            raw = await asyncio.wait_for(self._call(message, current_slot, history, today), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Field extraction timed out", extra={"error": f"timeout={self.timeout}s"})
            return {}
        except (ExtractionError, OpenAIError) as e:
            logger.warning("Field extraction failed", extra={"error": str(e)})
            return {}

        return self._clean(raw, today)

    async def _call(self, message, current_slot, history, today) -> dict:
        system_prompt = EXTRACTION_PROMPT.format(
            today=today.isoformat(),
            weekday=today.strftime("%A"),
            slot=json.dumps(current_slot, default=str),
        )
        recent = history[-self.history_limit:] if self.history_limit else []
        messages = [{"role": m["role"], "content": m["content"]} for m in recent]
        messages.append({"role": "user", "content": message})
        return await extract_json_from_llm(system_prompt, messages, model=self.model, client=self.client)

    def _clean(self, raw: dict, today: date) -> dict:
        """Keep known, non-empty string fields; normalize date and time."""
        fields = {}
        for key in EXTRACTED_FIELDS:
            value = raw.get(key)
            if value is None or not isinstance(value, (str, int, float)):
                continue
            value = str(value).strip()
            if not value or value.lower() in ("null", "none"):
                continue
            fields[key] = value

        if "date" in fields:
            parsed = parse_date(fields["date"], today)
            if parsed:
                fields["date"] = parsed.isoformat()
            else:
                del fields["date"]

        if "time" in fields:
            parsed = parse_time(fields["time"])
            if parsed:
                fields["time"] = "%02d:%02d" % parsed
            else:
                del fields["time"]

        if "customer_phone" in fields:
            phone = parse_phone(fields["customer_phone"])
            if phone:
                fields["customer_phone"] = phone
            else:
                del fields["customer_phone"]

        return fields


def get_field_extractor() -> FieldExtractor:
    """Use the language model when a key is configured, the pattern parsers otherwise."""
    if settings.OPENAI_API_KEY:
        return LLMFieldExtractor()
    return PatternFieldExtractor()
