"""A stand-in for ``openai.OpenAI`` as used by ``finance_insights.enhance``.

Only ``client.responses.create(**kwargs)`` is modelled. Every call is
recorded; the reply is a fixed ``output_text`` or a fixed exception, so tests
can focus on what the enhancement step does with it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

_PROMPT_DATA_MARKER = "DATA:\n"


def extract_data_context(prompt: str) -> dict[str, Any]:
    """Return the JSON context embedded in an enhancement prompt."""

    start = prompt.find(_PROMPT_DATA_MARKER)
    if start == -1:
        raise AssertionError("enhance: prompt missing DATA section")
    line = prompt[start + len(_PROMPT_DATA_MARKER) :].split("\n", 1)[0]
    return json.loads(line)


def recommendation_items(*titles: str, confidence: str = "High") -> str:
    """A JSON array reply with one well-formed recommendation per title."""

    return json.dumps(
        [
            {
                "title": t,
                "description": f"{t} with a concrete next step.",
                "impact": "$25/month savings",
                "confidence": confidence,
            }
            for t in titles
        ]
    )


@dataclass
class _Reply:
    output_text: str


class _Responses:
    def __init__(self, stub: OpenAIStub) -> None:
        self._stub = stub

    def create(self, **kwargs: Any) -> _Reply:
        self._stub.calls.append(kwargs)
        if self._stub.error is not None:
            raise self._stub.error
        return _Reply(self._stub.output_text)


class OpenAIStub:
    """Client double exposing ``responses.create``.

    Parameters
    ----------
    output_text:
        Text returned for every call.
    error:
        When set, every call raises it instead.
    calls_out:
        Optional list to record call kwargs into (shared across stubs).
    """

    def __init__(
        self,
        output_text: str = "",
        *,
        error: Exception | None = None,
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        self.output_text = output_text
        self.error = error
        self.calls: list[dict[str, Any]] = calls_out if calls_out is not None else []
        self.responses = _Responses(self)
