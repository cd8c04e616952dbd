"""Best-effort follow-up effects that run after an authoritative write."""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def run_follow_ups(
    operation: str, follow_ups: list[tuple[str, Callable[[], Any]]]
) -> dict[str, Any]:
    """Run each follow-up in order inside its own error boundary.

    A failing follow-up is logged and recorded as ``None``; it never stops
    the ones after it and never propagates to the caller.

    Args:
        operation: Name of the primary operation, used in log messages
        follow_ups: Ordered ``(name, callable)`` pairs

    Returns:
        Dict of follow-up name to its return value (``None`` on failure)
    """
    results: dict[str, Any] = {}
    for name, effect in follow_ups:
        try:
            results[name] = effect()
        except Exception as e:
            logger.warning(f"Warning: {operation} follow-up '{name}' failed: {e}")
            results[name] = None
    return results
