"""Command-line interface for chzzk-open."""

import asyncio
import logging
import sys
from pathlib import Path

import click

from chzzk_open.client import ChzzkClient
from chzzk_open.config import load_config, save_tokens
from chzzk_open.events import EventName
from chzzk_open.exceptions import ChzzkError

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default="config.yaml",
    help="Path to config YAML file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool):
    """chzzk-open - Chzzk Open API client and chat listener."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"config_path": config_path, "config": load_config(config_path)}


@cli.command("auth-url")
@click.option("--redirect-uri", required=True, help="Registered redirect URI")
@click.option("--state", default="chzzk-open", help="CSRF state value")
@click.pass_context
def auth_url(ctx: click.Context, redirect_uri: str, state: str):
    """Print the URL to open in a browser to authorize this app."""
    client = ChzzkClient(ctx.obj["config"])
    try:
        click.echo(client.get_authorization_url(redirect_uri, state))
    except ChzzkError as e:
        logger.error(str(e))
        sys.exit(1)


@cli.command()
@click.option("--code", required=True, help="Authorization code from the redirect")
@click.option("--state", default="chzzk-open", help="State used for auth-url")
@click.pass_context
def token(ctx: click.Context, code: str, state: str):
    """Exchange an authorization code and save tokens to the config file."""

    async def run():
        async with ChzzkClient(ctx.obj["config"]) as client:
            return await client.issue_token(code, state)

    try:
        tokens = asyncio.run(run())
    except ChzzkError as e:
        logger.error(f"Authorization failed: {e}")
        sys.exit(1)

    save_tokens(ctx.obj["config_path"], tokens)
    click.echo(f"Tokens saved to {ctx.obj['config_path']}")


@cli.command()
@click.option("--channel", required=True, help="Channel ID to listen to")
@click.pass_context
def listen(ctx: click.Context, channel: str):
    """Connect to a channel's chat and print events until interrupted."""

    async def run():
        stopped = asyncio.Event()

        async with ChzzkClient(ctx.obj["config"]) as client:
            client.on(
                EventName.CHAT_MESSAGE,
                lambda m: click.echo(f"[CHAT] {m.nickname}: {m.message}"),
            )
            client.on(
                EventName.CHAT_DONATION,
                lambda d: click.echo(
                    f"[DONATION] {d.nickname}: {d.amount} {d.currency} {d.message}"
                ),
            )
            client.on(
                EventName.CHAT_SUBSCRIPTION,
                lambda s: click.echo(
                    f"[SUBSCRIPTION] {s.nickname}: {s.months} months ({s.tier_name})"
                ),
            )
            client.on(
                EventName.CHAT_NOTICE,
                lambda n: click.echo(f"[NOTICE/{n.notice_type}] {n.message}"),
            )
            client.on(
                EventName.CHAT_ERROR,
                lambda e: logger.warning(f"Chat error: {e.error}"),
            )

            def on_disconnected(event):
                if not event.will_reconnect:
                    stopped.set()

            client.on(EventName.CHAT_DISCONNECTED, on_disconnected)

            await client.connect_chat(channel)
            await stopped.wait()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, stopping listener")
    except ChzzkError as e:
        logger.error(f"Chat listener failed: {e}")
        sys.exit(1)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
