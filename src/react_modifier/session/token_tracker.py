"""Session-wide accounting of LLM token usage and cost."""

import logging
from datetime import datetime, timezone
from typing import Any

from react_modifier.models import TokenOperationLog, TokenUsage

logger = logging.getLogger(__name__)

# USD per token, keyed by model family
MODEL_PRICING: dict[str, dict[str, float]] = {
    "sonnet": {"input": 0.000003, "output": 0.000015},
    "opus": {"input": 0.000015, "output": 0.000075},
    "haiku": {"input": 0.00000025, "output": 0.00000125},
}
DEFAULT_PRICING_FAMILY = "sonnet"
LARGE_OPERATION_TOKENS = 8000


def _pricing_for(model: str) -> dict[str, float]:
    lowered = model.lower()
    for family, pricing in MODEL_PRICING.items():
        if family in lowered:
            return pricing
    return MODEL_PRICING[DEFAULT_PRICING_FAMILY]


class TokenTracker:
    """Accumulates token counts and estimated cost across one session."""

    def __init__(
        self,
        large_operation_tokens: int = LARGE_OPERATION_TOKENS,
        debug: bool = False,
    ) -> None:
        self.large_operation_tokens = large_operation_tokens
        self.debug = debug
        self.reset()

    def reset(self) -> None:
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.api_calls = 0
        self.session_start = datetime.now(timezone.utc)
        self.operation_logs: list[TokenOperationLog] = []

    def log_usage(self, usage: TokenUsage, operation: str, model: str = "") -> TokenOperationLog:
        """Record one LLM call.

        Args:
            usage: Token counts reported by the provider.
            operation: Short label of the calling step, e.g. "scope-analysis".
            model: Model id, used to pick pricing.

        Returns:
            The appended operation log entry.
        """
        pricing = _pricing_for(model)
        cost = usage.input_tokens * pricing["input"] + usage.output_tokens * pricing["output"]
        entry = TokenOperationLog(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            model=model,
            cost=cost,
        )

        if self.debug and self.operation_logs:
            previous = self.operation_logs[-1]
            if (
                previous.operation == operation
                and previous.input_tokens == usage.input_tokens
                and previous.output_tokens == usage.output_tokens
            ):
                logger.warning("Possible duplicate LLM call for operation '%s'", operation)

        if usage.total > self.large_operation_tokens:
            logger.warning(
                "Large LLM operation '%s': %d tokens", operation, usage.total
            )

        self.total_input_tokens += usage.input_tokens
        self.total_output_tokens += usage.output_tokens
        self.api_calls += 1
        self.operation_logs.append(entry)
        logger.debug(
            "Tokens for %s: in=%d out=%d cost=$%.5f",
            operation, usage.input_tokens, usage.output_tokens, cost,
        )
        return entry

    def get_total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def get_estimated_cost(self) -> float:
        return sum(entry.cost for entry in self.operation_logs)

    def get_operation_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self.operation_logs:
            counts[entry.operation] = counts.get(entry.operation, 0) + 1
        return counts

    def check_consistency(self) -> bool:
        """True when running totals match the per-operation log."""
        logged_input = sum(entry.input_tokens for entry in self.operation_logs)
        logged_output = sum(entry.output_tokens for entry in self.operation_logs)
        consistent = (
            logged_input == self.total_input_tokens
            and logged_output == self.total_output_tokens
            and len(self.operation_logs) == self.api_calls
        )
        if not consistent:
            logger.warning("Token tracker totals diverge from operation log")
        return consistent

    def get_stats(self) -> dict[str, Any]:
        total = self.get_total_tokens()
        duration = (datetime.now(timezone.utc) - self.session_start).total_seconds()
        breakdown: dict[str, dict[str, int]] = {}
        for entry in self.operation_logs:
            item = breakdown.setdefault(entry.operation, {"calls": 0, "tokens": 0})
            item["calls"] += 1
            item["tokens"] += entry.input_tokens + entry.output_tokens
        return {
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": total,
            "api_calls": self.api_calls,
            "estimated_cost": round(self.get_estimated_cost(), 6),
            "average_tokens_per_call": total // self.api_calls if self.api_calls else 0,
            "session_duration_seconds": round(duration, 2),
            "operations": breakdown,
        }
