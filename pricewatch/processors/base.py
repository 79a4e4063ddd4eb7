"""
Base action processor.
"""

import logging
from abc import ABC, abstractmethod

from pricewatch.database.models import Action, ActionType
from pricewatch.database.repository import ActionRepository

logger = logging.getLogger(__name__)


class ActionProcessor(ABC):
    """
    Handles the pending actions of one type.

    Permanent conditions (bad input, unknown product or user) mark the
    action processed. Transient failures leave it pending so a later
    tick retries it.
    """

    action_type: ActionType

    def __init__(self, action_repo: ActionRepository):
        self.action_repo = action_repo

    @abstractmethod
    def process(self, action: Action) -> None:
        """Process a single action."""
        pass

    def process_next(self, limit: int) -> int:
        """
        Process the oldest pending actions of this type.

        An action that raises is logged and left pending, and the rest of
        the batch still runs.

        Args:
            limit: Maximum number of actions to take

        Returns:
            Number of actions taken from the queue, whatever their outcome
        """
        actions = self.action_repo.find_pending_by_type(self.action_type, limit)

        for action in actions:
            try:
                self.process(action)
            except Exception:
                logger.exception(
                    f"Error processing {action.type.value} action {action.id}"
                )

        return len(actions)

    def _give_up(self, action: Action, reason: str) -> None:
        """Mark action processed after a permanent failure."""
        logger.warning(f"{action.type.value} action {action.id}: {reason}")
        self.action_repo.mark_processed(action.id)
