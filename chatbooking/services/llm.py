import json
from functools import lru_cache
from openai import AsyncOpenAI

from chatbooking.core.config import settings
from chatbooking.core.exceptions import ExtractionError


@lru_cache
def get_client() -> AsyncOpenAI:
    """Build the OpenAI client on first use so imports work without an API key."""
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


async def extract_json_from_llm(
    system_prompt: str,
    messages: list[dict],
    temperature: float = 0.0,
    model: str | None = None,
    client: AsyncOpenAI | None = None,
) -> dict:
    """
    Call OpenAI API and parse the response as JSON.
    Used for structured extraction of booking fields.

    Args:
        system_prompt: Instructions that tell AI to respond in JSON
        messages: Conversation so far, ending with the message to analyze
        temperature: Use 0 for deterministic extraction
        model: Which OpenAI model to use (defaults to OPENAI_MODEL)
        client: Client override, mainly for tests

    Returns:
        Parsed JSON object

    Raises:
        ExtractionError: The response was empty or not a JSON object
    """
    client = client or get_client()
    response = await client.chat.completions.create(
        model=model or settings.OPENAI_MODEL,
        messages=[{"role": "system", "content": system_prompt}] + messages,
        temperature=temperature,
        response_format={"type": "json_object"},
    )

    content = response.choices[0].message.content
    if not content:
        raise ExtractionError("Empty response from language model")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Failed to parse JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError("Language model returned JSON that is not an object")
    return data
