"""Free-text expense entry through a hosted language model.

``parse_expense_message("Paid 450 for cab to office")`` asks the model for
a JSON object with ``amount``, ``category``, ``description`` and ``date``
and validates it against the catalog.  Every failure (no API key, API error,
malformed JSON, unknown category) is logged and reported as ``None`` so the
caller can fall back to the manual entry form.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date, datetime
from typing import Any, Mapping, Optional

from openai import OpenAI, OpenAIError

from . import config
from .catalog import category_names, is_known_category
from .models import ExpenseDraft

logger = logging.getLogger(__name__)

TEMPERATURE = 0.1


def build_system_instruction(today: date) -> str:
    return (
        f"Extract expense JSON. Today: {today.isoformat()}. "
        f"Categories: {', '.join(category_names())}. "
        'Return format: {"amount":number,"category":string,"description":string,"date":"YYYY-MM-DD"}'
    )


def _build_client() -> Optional[OpenAI]:
    if not config.OPENAI_API_KEY:
        return None
    return OpenAI(api_key=config.OPENAI_API_KEY)


def _strip_code_fence(content: str) -> str:
    return content.replace("```json", "").replace("```", "").strip()


def draft_from_payload(payload: Mapping[str, Any]) -> Optional[ExpenseDraft]:
    """Validate a decoded model response and turn it into a draft.

    A missing or malformed ``date`` is dropped; everything else must be
    valid for a draft to be returned.
    """
    amount = payload.get('amount')
    if isinstance(amount, bool):
        return None
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        logger.info("Model response has no usable amount: %r", payload.get('amount'))
        return None
    if not math.isfinite(amount) or amount < 0:
        return None

    category = payload.get('category')
    if not isinstance(category, str) or not is_known_category(category):
        logger.info("Model response category %r is not in the catalog", category)
        return None

    description = payload.get('description')
    if not isinstance(description, str) or not description.strip():
        return None

    when = None
    raw_date = payload.get('date')
    if isinstance(raw_date, str) and raw_date.strip():
        try:
            when = datetime.strptime(raw_date.strip(), "%Y-%m-%d").date()
        except ValueError:
            logger.info("Dropping malformed date %r from model response", raw_date)

    return ExpenseDraft(amount=amount, category=category, description=description.strip(), date=when)


def parse_expense_message(
    message: str,
    today: Optional[date] = None,
    client: Optional[Any] = None,
) -> Optional[ExpenseDraft]:
    """Turn a free-text message into an :class:`ExpenseDraft`.

    Args:
        message: What the user typed, e.g. "Vegetables 320 yesterday"
        today: Reference date given to the model for relative dates
        client: OpenAI client; built from config when omitted

    Returns:
        The extracted draft, or None when nothing usable came back
    """
    if not message or not message.strip():
        return None

    client = client or _build_client()
    if client is None:
        logger.error("OPENAI_API_KEY is not set; free-text entry is unavailable")
        return None

    reference = today or date.today()
    try:
        response = client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": build_system_instruction(reference)},
                {"role": "user", "content": message.strip()},
            ],
            temperature=TEMPERATURE,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
    except (OpenAIError, AttributeError, IndexError):
        logger.exception("Expense extraction request failed")
        return None

    try:
        payload = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError:
        logger.warning("Model returned invalid JSON: %r", content[:200])
        return None
    if not isinstance(payload, dict):
        return None

    return draft_from_payload(payload)
