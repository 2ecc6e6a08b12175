"""Configuration objects passed explicitly into the analysis functions.

The core never reads the environment. ``EnhancementConfig.from_env`` exists for
the CLI edge only; library callers build the config themselves.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

_API_KEY_ENV = "OPENAI_API_KEY"
_MODEL_ENV = "FINANCE_INSIGHTS_MODEL"
_TIMEOUT_ENV = "FINANCE_INSIGHTS_AI_TIMEOUT"

DEFAULT_MODEL = "gpt-4o"


@dataclass(frozen=True, slots=True)
class EnhancementConfig:
    """Settings for the optional generative-text enhancement step.

    Attributes
    ----------
    api_key:
        Credential for the Responses API. Enhancement is skipped when blank.
    model:
        Model name sent with each request.
    timeout_seconds:
        Upper bound for one request; a timeout is handled like any failure.
    temperature, max_output_tokens:
        Sampling knobs forwarded to the request.
    max_data_items:
        How many domain data items are embedded in the prompt.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    timeout_seconds: float = 20.0
    temperature: float = 0.7
    max_output_tokens: int = 1000
    max_data_items: int = 5

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.max_data_items < 0:
            raise ValueError("max_data_items must be non-negative")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> EnhancementConfig:
        timeout_raw = (environ.get(_TIMEOUT_ENV) or "").strip()
        try:
            timeout = float(timeout_raw) if timeout_raw else 20.0
        except ValueError:
            raise ValueError(f"{_TIMEOUT_ENV} must be a number, got {timeout_raw!r}") from None
        return cls(
            api_key=environ.get(_API_KEY_ENV) or None,
            model=(environ.get(_MODEL_ENV) or "").strip() or DEFAULT_MODEL,
            timeout_seconds=timeout,
        )


DISABLED = EnhancementConfig()

__all__ = ["DEFAULT_MODEL", "DISABLED", "EnhancementConfig"]
