"""
services/compensation.py — Undo actions for multi-step flows.

A flow that touches an external system (upload an avatar, then a cover image,
then insert the user row) records an undo action after each completed step.
If a later step fails, unwind() runs the recorded actions newest-first.

Undo actions are best-effort: a failing action is logged and the rest still
run. The failure that triggered the unwind is what the caller reports.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class CompensationStack:

    def __init__(self) -> None:
        self._actions: list[tuple[str, Callable[..., Any], tuple]] = []

    def push(self, description: str, action: Callable[..., Any], *args: Any) -> None:
        self._actions.append((description, action, args))

    def unwind(self) -> list[str]:
        """
        Runs every recorded action in reverse order, then clears the stack.

        Returns the descriptions of actions that failed.
        """
        failed: list[str] = []
        while self._actions:
            description, action, args = self._actions.pop()
            try:
                action(*args)
                logger.warning("Compensated: %s", description)
            except Exception:
                logger.exception("Compensation failed: %s", description)
                failed.append(description)
        return failed

    def discard(self) -> None:
        """Forgets recorded actions once the flow has succeeded."""
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)
