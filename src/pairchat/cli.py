"""Command-line interface for pairchat."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click

from pairchat import __version__
from pairchat.config import Config
from pairchat.logging import get_logger, setup_logging

log = get_logger("cli")

T = TypeVar("T")


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config).",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="Output logs as JSON or human-readable format (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    log_level: str | None,
    log_json: bool | None,
) -> None:
    """pairchat - two-party messaging with a resilient local cache.

    Run the backend with `serve`, then chat from any number of sessions.
    """
    ctx.ensure_object(dict)

    config = Config.load_or_default(config_file)
    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file

    # CLI overrides config
    effective_log_level = log_level or config.log_level
    effective_log_json = log_json if log_json is not None else config.log_json

    setup_logging(json_output=effective_log_json, level=effective_log_level)


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"pairchat {__version__}")


@cli.command()
@click.option("--host", default=None, help="Host to bind (default: from config).")
@click.option("--port", default=None, type=int, help="Port to bind (default: from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the backend API server.

    Creates and seeds the JSON document on first start. API documentation
    is served at /docs.
    """
    import uvicorn

    from pairchat.api import create_app
    from pairchat.errors import StoreError
    from pairchat.store import JsonStore

    cfg = ctx.obj["config"]
    host = host or cfg.server.host
    port = port or cfg.server.port

    try:
        store = JsonStore.from_config(cfg)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    app = create_app(cfg)
    app.state.config = cfg
    app.state.store = store

    log.info("serve_command_invoked", host=host, port=port, store=str(store.path))

    try:
        uvicorn.run(app, host=host, port=port, log_level=cfg.log_level.lower())
    except KeyboardInterrupt:
        log.info("serve_shutdown_requested")


# =============================================================================
# Client commands
# =============================================================================


def _run_client(config: Config, action: Callable[..., Awaitable[T]]) -> T:
    """Build a reconciler for this process and run one async action with it."""
    from pairchat.cache import LocalCache
    from pairchat.client import ChatApiClient
    from pairchat.reconciler import Reconciler

    async def run() -> T:
        async with ChatApiClient.from_config(config) as api:
            reconciler = Reconciler(LocalCache(config.cache_dir), api)
            return await action(reconciler)

    return asyncio.run(run())


async def _require_users(reconciler, **names: str):
    """Fetch the user list and fail on any option naming an unknown user.

    Keyword names are the option names used in the error, e.g. ``user``.
    """
    known = await reconciler.fetch_users()
    known_names = {user.name for user in known}
    for option, name in names.items():
        if name not in known_names:
            raise click.BadParameter(f"Unknown user: {name}", param_hint=f"--{option}")
    return known


def _echo_messages(messages, current_user: str) -> None:
    for message in messages:
        who = "me" if message.sender == current_user else message.sender
        click.echo(f"[{message.time}] {who}: {message.text}")


def _echo_summaries(summaries) -> None:
    for summary in summaries:
        click.echo(f"{summary.peer}: {summary.latest_text or '(no messages yet)'}")


@cli.command()
@click.pass_context
def users(ctx: click.Context) -> None:
    """List the users you can chat with."""

    async def action(reconciler):
        return await reconciler.fetch_users()

    for user in _run_client(ctx.obj["config"], action):
        click.echo(f"{user.id}\t{user.name}")


@cli.command()
@click.option("-u", "--user", "current_user", required=True, help="Your user name.")
@click.pass_context
def channels(ctx: click.Context, current_user: str) -> None:
    """List your channels with each one's latest message."""
    from pairchat.channels import channel_summaries
    from pairchat.session import SessionContext

    session = SessionContext(current_user=current_user)

    async def action(reconciler):
        users = await _require_users(reconciler, user=current_user)
        result = await reconciler.fetch_all(session)
        return result, channel_summaries(result.messages, users, current_user)

    result, summaries = _run_client(ctx.obj["config"], action)
    if result.degraded:
        click.echo("(offline: showing cached messages)", err=True)
    _echo_summaries(summaries)


@cli.command()
@click.option("-u", "--user", "current_user", required=True, help="Your user name.")
@click.option("-p", "--peer", required=True, help="The other user in the channel.")
@click.pass_context
def show(ctx: click.Context, current_user: str, peer: str) -> None:
    """Print the messages in one channel."""
    from pairchat.channels import channel_messages
    from pairchat.session import SessionContext

    session = SessionContext(current_user=current_user)

    async def action(reconciler):
        await _require_users(reconciler, user=current_user, peer=peer)
        return await reconciler.fetch_all(session)

    result = _run_client(ctx.obj["config"], action)
    if result.degraded:
        click.echo("(offline: showing cached messages)", err=True)

    messages = channel_messages(result.messages, current_user, peer)
    if not messages:
        click.echo(f"No messages with {peer} yet.")
        return
    _echo_messages(messages, current_user)


@cli.command()
@click.option("-u", "--user", "current_user", required=True, help="Your user name.")
@click.option("-t", "--to", "receiver", required=True, help="Recipient user name.")
@click.argument("text")
@click.pass_context
def send(ctx: click.Context, current_user: str, receiver: str, text: str) -> None:
    """Send TEXT to another user.

    The message is saved locally first. If the backend cannot be reached
    it stays in the local cache and is reported as not yet confirmed.
    """
    from pairchat.session import SessionContext

    if not text.strip():
        raise click.BadParameter("message text must not be empty", param_hint="TEXT")

    session = SessionContext(current_user=current_user)

    async def action(reconciler):
        await _require_users(reconciler, user=current_user, to=receiver)
        return await reconciler.send(session, receiver, text)

    result = _run_client(ctx.obj["config"], action)
    if result.confirmed:
        click.echo(f"Sent to {receiver} ({result.message.id})")
    else:
        click.echo(
            "Message saved locally, but syncing to the server failed: "
            f"{result.error}",
            err=True,
        )


@cli.command()
@click.option("-u", "--user", "current_user", required=True, help="Your user name.")
@click.option("-p", "--peer", default=None, help="Watch one channel instead of the channel list.")
@click.option("--interval", type=float, default=None, help="Poll interval in seconds.")
@click.pass_context
def watch(ctx: click.Context, current_user: str, peer: str | None, interval: float | None) -> None:
    """Follow a channel (or the channel list) until interrupted."""
    from pairchat.session import SessionContext
    from pairchat.watcher import ChannelWatcher

    cfg = ctx.obj["config"]
    session = SessionContext(current_user=current_user)
    if interval is None:
        interval = (
            cfg.client.poll_interval_seconds if peer else cfg.client.list_poll_interval_seconds
        )

    seen: set[str] = set()

    def on_update(view) -> None:
        if peer is None:
            click.clear()
            _echo_summaries(view)
            return
        fresh = [m for m in view if m.id not in seen]
        seen.update(m.id for m in fresh)
        _echo_messages(fresh, current_user)

    async def action(reconciler):
        names = {"user": current_user} if peer is None else {"user": current_user, "peer": peer}
        await _require_users(reconciler, **names)
        watcher = ChannelWatcher(
            reconciler,
            session,
            on_update,
            peer=peer,
            interval=interval,
            change_check_interval=cfg.client.change_check_interval_seconds,
        )
        await watcher.attach()
        try:
            await asyncio.Event().wait()
        finally:
            watcher.detach()

    log.info("watch_command_invoked", user=current_user, peer=peer, interval=interval)
    try:
        _run_client(cfg, action)
    except KeyboardInterrupt:
        log.info("watch_stopped")


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="config.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Configuration valid: {config_file}")
    click.echo(f"  Data directory: {cfg.data_dir}")
    click.echo(f"  Store path: {cfg.store_path}")
    click.echo(f"  Cache directory: {cfg.cache_dir}")
    click.echo(f"  API URL: {cfg.client.api_base_url}")
    click.echo(f"  Users: {', '.join(user.name for user in cfg.users)}")
    click.echo(f"  Log level: {cfg.log_level}")
