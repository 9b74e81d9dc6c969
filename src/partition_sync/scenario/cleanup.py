"""Stack of cleanup actions executed in reverse registration order."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CleanupAction:
    """A registered teardown step."""

    description: str
    action: Callable[[], None]


@dataclass
class CleanupFailure:
    """A teardown step that raised."""

    description: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.description}: {self.error}"


class CleanupStack:
    """Teardown steps registered as resources are created.

    ``run()`` pops and executes them last-in first-out, so every resource is
    torn down before the resources it depends on. A failing step does not
    stop the remaining ones.
    """

    def __init__(self) -> None:
        self._actions: list[CleanupAction] = []

    def __len__(self) -> int:
        return len(self._actions)

    def __enter__(self) -> CleanupStack:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.run()

    def push(self, description: str, action: Callable[[], None]) -> None:
        """Register a teardown step."""
        logger.debug(f"Registered cleanup: {description}")
        self._actions.append(CleanupAction(description, action))

    def run(self) -> list[CleanupFailure]:
        """Execute every registered step in reverse order.

        Returns:
            Failures of the steps that raised, in execution order.
        """
        failures: list[CleanupFailure] = []
        while self._actions:
            entry = self._actions.pop()
            logger.info(f"Cleanup: {entry.description}")
            try:
                entry.action()
            except Exception as e:
                logger.error(f"Cleanup step '{entry.description}' failed: {e}")
                failures.append(CleanupFailure(entry.description, e))
        return failures

    def skip(self) -> list[str]:
        """Discard pending steps without running them.

        Returns:
            Descriptions of the discarded steps.
        """
        skipped = [entry.description for entry in reversed(self._actions)]
        self._actions.clear()
        for description in skipped:
            logger.warning(f"Skipping cleanup: {description}")
        return skipped
