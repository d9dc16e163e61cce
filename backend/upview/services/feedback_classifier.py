"""
Together AI client for labelling player feedback.

Uses Together's /v1/completions API via httpx. The model is asked for a
single word; the first valid label found in its answer wins.

Configuration:
  TOGETHER_API_KEY — server-side only (never exposed to clients)
  TOGETHER_MODEL   — defaults to the free Llama 3.3 70B turbo endpoint

Classification never fails a request: a missing key, an HTTP error or an
unparseable answer all fall back to "Other" and are logged.
"""

from __future__ import annotations

import logging
import re

import httpx

from upview.core.config import settings

logger = logging.getLogger(__name__)

_TOGETHER_BASE_URL = "https://api.together.xyz/v1"

CATEGORIES = ("bug", "suggestion", "spam", "rude", "other")
DEFAULT_CATEGORY = "Other"

_WORD = re.compile(r"\b\w+\b")

PROMPT_TEMPLATE = """\
Categorise the following message strictly as one of: bug, suggestion, spam, rude, or other.

Definitions:
- bug: Describes something broken or not working.
- suggestion: A feature or improvement idea.
- spam: Irrelevant, random, unreadable, promotional, or repeated content.
- rude: Contains insults, profanity, or offensive language.
- other: Anything else.

Always classify gibberish or unreadable text (e.g., "asdjklajsd") as spam.
Return only one word — lowercase, no punctuation.

Message: \"\"\"{text}\"\"\"
Category:"""


def parse_category(raw: str) -> str:
    """First valid label word in the model output, capitalised."""
    for word in _WORD.findall(raw.strip().lower()):
        if word in CATEGORIES:
            return word.capitalize()
    return DEFAULT_CATEGORY


class FeedbackClassifier:
    """Labels free text as Bug | Suggestion | Spam | Rude | Other."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str = settings.TOGETHER_API_KEY,
        model: str = settings.TOGETHER_MODEL,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._model = model

    async def classify(self, text: str) -> str:
        if not self._api_key:
            logger.warning("TOGETHER_API_KEY is not configured; defaulting to %s", DEFAULT_CATEGORY)
            return DEFAULT_CATEGORY

        payload = {
            "model": self._model,
            "prompt": PROMPT_TEMPLATE.format(text=text),
            "max_tokens": 10,
            "temperature": 0.1,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post(
                f"{_TOGETHER_BASE_URL}/completions",
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("Together AI unreachable: %s", exc)
            return DEFAULT_CATEGORY

        if response.status_code != 200:
            logger.error(
                "Together AI error: status=%d body=%s",
                response.status_code,
                response.text[:500],
            )
            return DEFAULT_CATEGORY

        try:
            raw = response.json()["choices"][0]["text"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Failed to parse Together AI response: %s", exc)
            return DEFAULT_CATEGORY

        category = parse_category(raw)
        logger.debug("Classified feedback as %s (raw=%r)", category, raw)
        return category
