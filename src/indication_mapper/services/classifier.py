"""ICD-10 classification of label indications via OpenAI chat completions.

All indications of one drug go out in a single request. The model is asked
to answer with a JSON array in the same order as the input; results are
paired with the input by position, never by title.
"""

import json
import logging
import re
from typing import Any

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI

from indication_mapper.config import get_settings
from indication_mapper.data_sources.base_client import (
    MalformedResponseError,
    MissingCredentialError,
    NetworkError,
    UpstreamError,
)
from indication_mapper.models.model_indication import ClassifiedIndication, RawIndication

logger = logging.getLogger(__name__)

SOURCE = "openai"

SYSTEM_PROMPT = (
    "You are a medical coding assistant who maps drug indications to ICD-10 codes."
)

CLASSIFY_PROMPT = """You are a medical coding expert.

Given the following drug indications, map each to the most relevant ICD-10 code and description.
If there is no clear ICD-10 match, set the code and description to null.
Return exactly one entry per indication, in the same order as the input.

Output as a JSON array in this format:
[
  {{
    "title": "...",
    "text": "...",
    "icd10_code": "...",
    "icd10_description": "..."
  }},
  ...
]

Indications:
{indications}
"""

_OPENING_FENCE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\s*```\s*$")


def build_prompt(indications: list[RawIndication]) -> str:
    payload = [indication.model_dump(include={"title", "text"}) for indication in indications]
    return CLASSIFY_PROMPT.format(indications=json.dumps(payload, indent=2))


def strip_fences(message: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    cleaned = _OPENING_FENCE.sub("", message, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def _clean(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_classification(
    message: str, indications: list[RawIndication]
) -> list[ClassifiedIndication]:
    """Pair the model's JSON answer with the input indications by position.

    An empty array is returned as-is. Entries with only one of code and
    description are treated as unmappable.
    """
    try:
        parsed = json.loads(strip_fences(message))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(SOURCE, f"Response is not valid JSON: {e}") from e

    if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
        raise MalformedResponseError(SOURCE, "Expected a JSON array of objects")
    if not parsed:
        return []
    if len(parsed) != len(indications):
        raise MalformedResponseError(
            SOURCE,
            f"Expected {len(indications)} classifications, got {len(parsed)}",
        )

    results = []
    for indication, item in zip(indications, parsed):
        code = _clean(item.get("icd10_code", item.get("code")))
        description = _clean(item.get("icd10_description", item.get("description")))
        if code is None or description is None:
            if code is not None or description is not None:
                logger.warning(
                    "Incomplete ICD-10 mapping for %r, treating as unmappable",
                    indication.title,
                )
            code = description = None
        results.append(
            ClassifiedIndication(
                title=indication.title,
                text=indication.text,
                code=code,
                description=description,
            )
        )
    return results


class ICD10Classifier:
    """Maps raw indications to ICD-10 codes with one chat completion per batch."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.classification_model
        self.temperature = (
            temperature if temperature is not None else settings.classification_temperature
        )
        self.timeout = timeout if timeout is not None else settings.classification_timeout
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key, timeout=self.timeout, max_retries=0
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def classify(self, indications: list[RawIndication]) -> list[ClassifiedIndication]:
        """Return one ClassifiedIndication per input, in input order."""
        if not self.api_key:
            raise MissingCredentialError(SOURCE, "OPENAI_API_KEY is not set")
        if not indications:
            return []

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(indications)},
                ],
            )
        except (APITimeoutError, APIConnectionError) as e:
            logger.error("Error mapping indications to ICD-10: %s", e)
            raise NetworkError(SOURCE, f"Connection error: {e}") from e
        except APIError as e:
            logger.error("Error mapping indications to ICD-10: %s", e)
            raise UpstreamError(SOURCE, str(e), status_code=getattr(e, "status_code", None)) from e

        choices = response.choices or []
        message = choices[0].message.content if choices else None
        if not message:
            logger.error("Error mapping indications to ICD-10: no response")
            raise UpstreamError(SOURCE, "no response")

        try:
            results = parse_classification(message, indications)
        except MalformedResponseError as e:
            logger.error("Error mapping indications to ICD-10: %s", e)
            raise

        logger.info(
            "Classified %d indications (%d mapped)",
            len(results),
            sum(1 for r in results if r.code is not None),
        )
        return results
