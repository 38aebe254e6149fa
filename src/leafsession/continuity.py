"""
Offer to resume a recently saved session once bootstrap has finished.
"""

import math
import time
from typing import Callable, Optional

from leafsession.logger import get_logger
from leafsession.models import ConfirmationModal, PreviousSessionSnapshot
from leafsession.network.base import PreviousSessionStore
from leafsession.state import SessionStore, Transition, TransitionType

logger = get_logger(__name__)


def describe_elapsed(minutes: int) -> str:
    """Human-readable 'saved ...' text for a whole number of minutes."""
    if minutes <= 0:
        return "less than a minute ago"
    if minutes == 1:
        return "about 1 minute ago"
    return f"about {minutes} minutes ago"


def elapsed_minutes(timestamp: float, now: float) -> int:
    """Whole minutes between an epoch timestamp and now, never negative."""
    return max(0, math.floor((now - timestamp) / 60))


class SessionContinuityManager:
    """Looks up the previous session and asks whether to restore it."""

    def __init__(
        self,
        snapshots: PreviousSessionStore,
        clock: Callable[[], float] = time.time,
    ):
        self.snapshots = snapshots
        self.clock = clock

    def offer(self, store: SessionStore) -> Optional[ConfirmationModal]:
        """
        Request a resume confirmation if a fresh enough snapshot exists.

        Returns:
            The dispatched modal, or None when nothing was offered.
        """
        previous = self.snapshots.get_previous_session(store.state)
        if previous is None:
            return None

        minutes = elapsed_minutes(previous.timestamp, self.clock())
        window = store.state.config.resume_window_minutes
        if minutes >= window:
            logger.debug(f"Discarding previous session saved {minutes}m ago")
            return None

        modal = ConfirmationModal(
            header="Continue previous session",
            body=(
                "Do you want to resume your previous session "
                f"(saved {describe_elapsed(minutes)})?"
            ),
            no_button_text="No, I'll start fresh",
            yes_button_text="Yes, load my previous query",
            on_click_yes=lambda: self.restore(store, previous),
            on_click_no=lambda: None,
        )
        store.dispatch(Transition(TransitionType.CONFIRMATION_REQUESTED, modal))
        return modal

    @staticmethod
    def restore(store: SessionStore, previous: PreviousSessionSnapshot) -> None:
        """Make the snapshot's query, panels and filters the active state."""
        logger.info("Restoring previous session")
        store.dispatch(
            Transition(TransitionType.CURRENT_QUERY_SET, previous.current_query)
        )
        store.dispatch(Transition(TransitionType.PANELS_SET, previous.panels))
        store.dispatch(
            Transition(TransitionType.PANEL_FILTERS_SET, previous.panel_filters)
        )
