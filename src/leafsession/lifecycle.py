"""
Session lifecycle: periodic token refresh, logout, and inactivity logout.
"""

import asyncio
import time
from datetime import datetime
from typing import Optional

from leafsession.config import AuthMechanism
from leafsession.logger import get_logger
from leafsession.models import PreviousSessionSnapshot, SessionContext
from leafsession.network.base import Navigator, PreviousSessionStore, TokenService
from leafsession.state import SessionStore, Transition, TransitionType

logger = get_logger(__name__)


class SessionLifecycleController:
    """Refreshes and ends the session held in a SessionStore."""

    def __init__(
        self,
        store: SessionStore,
        tokens: TokenService,
        navigator: Navigator,
        snapshots: Optional[PreviousSessionStore] = None,
    ):
        self.store = store
        self.tokens = tokens
        self.navigator = navigator
        self.snapshots = snapshots

    async def refresh(self) -> SessionContext:
        """Replace the session context with a fresh one. Errors propagate."""
        ctx = await self.tokens.refresh(self.store.state)
        self.store.dispatch(Transition(TransitionType.SESSION_CONTEXT_SET, ctx))
        logger.debug("Session token refreshed")
        return ctx

    async def logout(self) -> None:
        """
        End the session and leave the client.

        In secured modes the server is asked to blacklist the token first; a
        failure there is logged and does not stop local cleanup or redirect.
        """
        state = self.store.state
        auth = state.config.authentication
        logout_uri = auth.logout_uri

        if auth.mechanism != AuthMechanism.UNSECURED:
            result = None
            try:
                result = await self.tokens.logout(state)
            except Exception as e:
                logger.warning(f"Server-side logout failed: {e}")

            self.tokens.clear_local_token(state.config)
            self.store.dispatch(Transition(TransitionType.TOKEN_CLEARED))

            if result is not None and result.logout_uri:
                logout_uri = result.logout_uri

        if logout_uri:
            logger.info(f"Logged out, redirecting to {logout_uri}")
            self.navigator.redirect(logout_uri)
        else:
            logger.info("Logged out, reloading client")
            self.navigator.reload()

    async def save_session_and_logout(self) -> None:
        """Persist the in-progress query state, then force a re-login."""
        state = self.store.state
        if self.snapshots is not None:
            self.snapshots.save_session(
                PreviousSessionSnapshot(
                    current_query=state.current_query,
                    panels=list(state.panels),
                    panel_filters=list(state.panel_filters),
                    timestamp=time.time(),
                )
            )
            logger.info("Saved session before inactivity logout")
        self.navigator.reload()


class RefreshRunner:
    """
    Calls ``controller.refresh()`` at a fixed interval, taken from the
    session config unless given explicitly.

    A failed tick is recorded and logged; the loop keeps going.
    """

    def __init__(
        self,
        controller: SessionLifecycleController,
        interval_minutes: Optional[float] = None,
    ):
        self.controller = controller
        if interval_minutes is None:
            interval_minutes = controller.store.state.config.refresh_interval_minutes
        self.interval_minutes = interval_minutes
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_run_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the refresh loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"RefreshRunner started (every {self.interval_minutes}m)")

    async def stop(self):
        """Stop the refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("RefreshRunner stopped.")

    async def _run_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.interval_minutes * 60)
            except asyncio.CancelledError:
                break

            try:
                await self.controller.refresh()
                self._last_run_at = datetime.now()
                self._last_error = None
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Session refresh failed: {e}")
                self._last_error = str(e)

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "interval_minutes": self.interval_minutes,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_error": self._last_error,
        }
