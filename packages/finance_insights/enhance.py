"""Optional generative-text enhancement of deterministic recommendations.

Public API:
    - :func:`enhance`

``enhance`` is strictly additive and safe to skip. It never raises and never
turns a non-empty input into an empty result: missing credentials, a network
error, a timeout, non-JSON text, a wrong shape, or an empty array all return
the deterministic ``base`` list unchanged. Failures are logged, not surfaced.

No side effects occur at import time (no client creation, no environment
reads).
"""

from __future__ import annotations

import json
import random
import string
import time
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, field_validator

from . import prompting
from .config import EnhancementConfig
from .logging_setup import get_logger
from .models import Confidence, Recommendation

_logger = get_logger("finance_insights.enhance")

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_SUFFIX_LEN = 7


class _EnhancedItem(BaseModel):
    """One recommendation as returned by the model."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str
    description: str
    impact: str
    confidence: Confidence

    @field_validator("title", "description", "impact")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _lower_confidence(cls, v: Any) -> Any:
        # The prompt asks for "High"/"Medium"/"Low".
        return v.strip().lower() if isinstance(v, str) else v


class _EnhancedBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[_EnhancedItem]


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses API result.

    Prefer ``resp.output_text``; fall back to ``resp.output[0].content[0].text``.
    Raise ``ValueError`` if no text can be found.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content and len(content) > 0:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _strip_code_fence(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        first_nl = s.find("\n")
        s = s[first_nl + 1 :] if first_nl != -1 else ""
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def parse_enhanced(text: str) -> list[_EnhancedItem]:
    """Decode and validate the model's JSON array.

    Raises ``ValueError`` (including ``pydantic.ValidationError``) on any
    deviation, and for an empty array.
    """

    try:
        decoded = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON") from e
    if not isinstance(decoded, list):
        raise ValueError("Model output was not a JSON array")
    parsed = _EnhancedBody.model_validate({"items": decoded})
    if not parsed.items:
        raise ValueError("Model returned an empty array")
    return parsed.items


def _create_client(config: EnhancementConfig) -> OpenAI:
    return OpenAI(api_key=config.api_key, timeout=config.timeout_seconds, max_retries=0)


def _enhanced_id(domain: str, now: datetime) -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=_ID_SUFFIX_LEN))
    return f"ai-{domain}-{int(now.timestamp() * 1000)}-{suffix}"


def enhance(
    domain: str,
    base: Sequence[Recommendation],
    data: Sequence[Any],
    total_spending: Decimal,
    *,
    config: EnhancementConfig,
    now: datetime,
    client: Any | None = None,
) -> list[Recommendation]:
    """Ask the generative-text service to rewrite ``base``; fall back on failure.

    Parameters
    ----------
    domain:
        Recommendation domain (``spending``, ``subscriptions``, ...).
    base:
        Deterministic recommendations from :func:`~finance_insights.recommendations.generate`.
    data, total_spending:
        The same inputs ``base`` was generated from; the first
        ``config.max_data_items`` data items are sent as context.
    config:
        Credentials and request knobs. A disabled config skips the call.
    now:
        Timestamp for ids and ``created_at`` of enhanced items.
    client:
        Optional pre-built client exposing ``responses.create``.
    """

    base_list = list(base)
    if not base_list:
        return base_list
    if not config.enabled:
        _logger.debug("enhance:skip domain=%s reason=disabled", domain)
        return base_list

    t0 = time.perf_counter()
    try:
        context = prompting.build_data_context(
            domain, base_list, data, total_spending, max_items=config.max_data_items
        )
        prompt = prompting.build_enhancement_prompt(context)
        c = client if client is not None else _create_client(config)
        _logger.info("enhance:llm domain=%s base=%d", domain, len(base_list))
        resp = c.responses.create(
            model=config.model,
            input=prompt,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
            timeout=config.timeout_seconds,
        )
        items = parse_enhanced(_extract_response_text(resp))
    except Exception as e:  # noqa: BLE001 - any failure means deterministic output
        dt_ms = (time.perf_counter() - t0) * 1000.0
        _logger.warning(
            "enhance:fallback domain=%s reason=%s latency_ms=%.2f",
            domain,
            e.__class__.__name__,
            dt_ms,
        )
        return base_list

    out = [
        Recommendation(
            id=_enhanced_id(domain, now),
            title=item.title,
            description=item.description,
            impact_text=item.impact,
            confidence=item.confidence,
            created_at=now,
            domain=domain,
            source="ai",
        )
        for item in items
    ]
    dt_ms = (time.perf_counter() - t0) * 1000.0
    _logger.info(
        "enhance:done domain=%s enhanced=%d latency_ms=%.2f", domain, len(out), dt_ms
    )
    return out


__all__ = ["enhance", "parse_enhanced"]
