"""
Model cascade retry policy.

Two-level state machine driving LLM calls:

- outer state: index into the ordered list of model identifiers (the cascade)
- inner state: attempt counter for the current model

Transient failures (rate limit, overload) are retried on the same model after
a growing delay until the attempt budget is spent; then the cascade moves on.
Permanent failures move on immediately. The policy never sleeps and never
performs I/O; callers act on the returned decision.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class RetryAction(Enum):
    RETRY = "retry"            # wait `delay`, then call the same model again
    NEXT_MODEL = "next_model"  # move to the next model without waiting
    EXHAUSTED = "exhausted"    # no models left


@dataclass(frozen=True)
class RetryDecision:
    action: RetryAction
    delay: float = 0.0
    model: Optional[str] = None  # model to call next, None when exhausted


class CascadeRetryPolicy:
    """
    Backoff schedule per model: base_delay * backoff_factor ** (attempt - 1),
    i.e. 5s, 10s, 20s with the defaults. The schedule restarts for each model.
    """

    def __init__(self, models: List[str], max_attempts: int = 3,
                 base_delay: float = 5.0, backoff_factor: float = 2.0):
        if not models:
            raise ValueError("At least one model is required")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay < 0 or backoff_factor < 1:
            raise ValueError("Backoff must be non-negative and non-decreasing")

        self.models = list(models)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor

        self.model_index = 0
        self.attempt = 1

    @classmethod
    def from_config(cls, models: Optional[List[str]] = None) -> "CascadeRetryPolicy":
        from config import CHAT_MODELS, RETRY_CONFIG
        return cls(
            models or CHAT_MODELS,
            max_attempts=RETRY_CONFIG["max_attempts"],
            base_delay=RETRY_CONFIG["base_delay"],
            backoff_factor=RETRY_CONFIG["backoff_factor"],
        )

    @property
    def exhausted(self) -> bool:
        return self.model_index >= len(self.models)

    @property
    def current_model(self) -> Optional[str]:
        return None if self.exhausted else self.models[self.model_index]

    def delay_for(self, attempt: int) -> float:
        """Wait before retry number `attempt` (1-based) of the same model."""
        return self.base_delay * (self.backoff_factor ** (attempt - 1))

    def on_failure(self, transient: bool) -> RetryDecision:
        """Advance the state machine after a failed attempt on current_model."""
        if self.exhausted:
            return RetryDecision(RetryAction.EXHAUSTED)

        if transient and self.attempt < self.max_attempts:
            delay = self.delay_for(self.attempt)
            self.attempt += 1
            return RetryDecision(RetryAction.RETRY, delay=delay, model=self.current_model)

        self.model_index += 1
        self.attempt = 1
        if self.exhausted:
            return RetryDecision(RetryAction.EXHAUSTED)
        return RetryDecision(RetryAction.NEXT_MODEL, model=self.current_model)

    def reset(self):
        self.model_index = 0
        self.attempt = 1
