"""
Previous-session stores.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from leafsession.logger import get_logger
from leafsession.models import PreviousSessionSnapshot
from leafsession.network.base import PreviousSessionStore

if TYPE_CHECKING:
    from leafsession.state import SessionState

logger = get_logger(__name__)


class MemorySessionStore(PreviousSessionStore):
    """Keeps the last saved snapshot in memory."""

    def __init__(self, snapshot: Optional[PreviousSessionSnapshot] = None):
        self.snapshot = snapshot

    def get_previous_session(
        self, state: "SessionState"
    ) -> Optional[PreviousSessionSnapshot]:
        return self.snapshot

    def save_session(self, snapshot: PreviousSessionSnapshot) -> None:
        self.snapshot = snapshot


class JsonSessionStore(PreviousSessionStore):
    """Keeps the last saved snapshot in a JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_previous_session(
        self, state: "SessionState"
    ) -> Optional[PreviousSessionSnapshot]:
        if not self.path.exists():
            return None
        try:
            return PreviousSessionSnapshot.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except ValueError as e:
            logger.warning(f"Ignoring unreadable session snapshot {self.path}: {e}")
            return None

    def save_session(self, snapshot: PreviousSessionSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(snapshot.model_dump_json(by_alias=True), encoding="utf-8")
