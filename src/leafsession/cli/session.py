"""
Session commands.

Usage:
    leafsession login [--server URL] [--identified] [--snapshot PATH]
    leafsession responders [--server URL]
    leafsession logout --token TOKEN [--server URL]
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from leafsession.bootstrap import SessionBootstrapPipeline
from leafsession.config import Config
from leafsession.continuity import SessionContinuityManager
from leafsession.errors import TransportError
from leafsession.lifecycle import SessionLifecycleController
from leafsession.models import Attestation, SessionContext
from leafsession.network.base import Navigator
from leafsession.network.http import decode_claims, open_services
from leafsession.network.store import JsonSessionStore
from leafsession.state import SessionState, SessionStore, Transition, TransitionType


class EchoNavigator(Navigator):
    """Reports where the client would go instead of opening a browser."""

    def redirect(self, uri: str) -> None:
        typer.echo(f"➡️  Redirect: {uri}")

    def reload(self) -> None:
        typer.echo("🔄 Reload required: sign in again.")


def _load_config(server: Optional[str]) -> Config:
    config = Config.from_env()
    if server:
        config = config.model_copy(update={"server_url": server})
    return config


def _echo_progress(transition: Transition, state: SessionState) -> None:
    if transition.type == TransitionType.LOAD_STATE_SET:
        typer.echo(f"  [{state.load_state.progress:>3}%] {state.load_state.display}")


async def _bootstrap(
    config: Config, attestation: Attestation, snapshot: Optional[Path]
) -> tuple[bool, SessionStore]:
    """Attest against the home node and run the full bootstrap."""
    async with open_services(config) as services:
        user = await services.tokens.get_user_context(config)
        store = SessionStore(SessionState(config=config, user=user))
        store.subscribe(_echo_progress)

        continuity = (
            SessionContinuityManager(JsonSessionStore(snapshot)) if snapshot else None
        )
        pipeline = SessionBootstrapPipeline(
            store,
            services.tokens,
            services.transport,
            services.loader,
            continuity=continuity,
        )
        ok = await pipeline.run(attestation)
        return ok, store


def _run(
    server: Optional[str], identified: bool, snapshot: Optional[Path]
) -> SessionStore:
    config = _load_config(server)
    attestation = Attestation(is_identified=identified)
    ok, store = asyncio.run(_bootstrap(config, attestation, snapshot))
    if not ok:
        typer.echo(f"❌ {store.state.load_state.display}")
        raise typer.Exit(code=1)
    return store


def login(
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Home node URL (default: LEAF_SERVER_URL)"
    ),
    identified: bool = typer.Option(
        False, "--identified", help="Attest to an identified study context"
    ),
    snapshot: Optional[Path] = typer.Option(
        None, "--snapshot", help="JSON file holding a previously saved session"
    ),
):
    """Attest and load a session."""
    store = _run(server, identified, snapshot)
    typer.echo(f"✅ Session ready ({len(store.state.responders)} node(s))")

    modal = store.state.confirmation
    if modal is not None and modal.show:
        if typer.confirm(modal.body, default=False):
            modal.on_click_yes()
            query = store.state.current_query or {}
            title = query.get("name") or query.get("id") or "untitled"
            typer.echo(f"📂 Restored query: {title}")
            typer.echo(f"   Panels: {len(store.state.panels)}")
        else:
            modal.on_click_no()


def responders(
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Home node URL (default: LEAF_SERVER_URL)"
    ),
    identified: bool = typer.Option(
        False, "--identified", help="Attest to an identified study context"
    ),
):
    """Bootstrap a session and list the nodes it reaches."""
    state = _run(server, identified, None).state

    typer.echo(f"📡 Nodes ({len(state.responders)}):\n")
    for node in state.responders:
        icon = "🏠" if node.is_home_node else "🟢"
        typer.echo(f"  {icon} [{node.id}] {node.name} ({node.address or 'home'})")


def logout(
    token: str = typer.Option(..., "--token", "-t", help="Current session token"),
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Home node URL (default: LEAF_SERVER_URL)"
    ),
):
    """Log out, revoking the token when the server is secured."""
    config = _load_config(server)
    try:
        ctx = SessionContext(raw_token=token, raw_decoded=decode_claims(token))
    except TransportError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    async def _logout():
        async with open_services(config) as services:
            store = SessionStore(SessionState(config=config, context=ctx))
            controller = SessionLifecycleController(
                store, services.tokens, EchoNavigator()
            )
            await controller.logout()

    asyncio.run(_logout())


def register_commands(app: typer.Typer):
    app.command("login")(login)
    app.command("responders")(responders)
    app.command("logout")(logout)
