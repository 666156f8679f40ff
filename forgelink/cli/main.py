# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Forgelink CLI - Main entry point

Usage:
    forgelink run                 - Run the bot
    forgelink login               - Generate a Matrix access token
    forgelink lookup 4521 ...     - Resolve issue references without Matrix
    forgelink config              - Show resolved configuration
"""

import signal
import sys
from typing import Optional, Tuple

import bittensor as bt
import click
from rich.console import Console
from rich.table import Table

from forgelink import __version__
from forgelink.bot import ForgeLinkBot
from forgelink.chat.matrix_client import MatrixClient, MatrixError
from forgelink.chat.render import format_link_lines, make_list
from forgelink.config import ConfigError, load_config
from forgelink.constants import DEFAULT_MATRIX_HOMESERVER, MESSAGE_STYLES
from forgelink.forge.client import GitHubClient
from forgelink.forge.resolver import IssueResolver
from forgelink.utils.logging import configure_logging, setup_relay_logger

console = Console()

env_file_option = click.option(
    '--env-file', type=click.Path(dir_okay=False), default=None, help='Load settings from this .env file'
)


@click.group()
@click.version_option(version=__version__, prog_name='forgelink')
def cli():
    """Forgelink - GitHub issue links and repository activity for Matrix rooms"""
    pass


@cli.command('run')
@env_file_option
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--trace', is_flag=True, help='Enable trace logging')
def run_command(env_file: Optional[str], debug: bool, trace: bool):
    """Run the bot until interrupted."""
    configure_logging(debug=debug, trace=trace)

    try:
        config = load_config(env_file)
    except ConfigError as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)

    relay_logger = None
    if config.relay_log_dir:
        relay_logger = setup_relay_logger(config.relay_log_dir, config.relay_log_size)

    matrix = MatrixClient(config.homeserver, config.matrix_access_token)
    github = GitHubClient(config.github_access_token, config.github_owner, config.github_repo)
    bot = ForgeLinkBot(matrix, github, config.room, config.message_style, relay_logger=relay_logger)

    def signal_handler(signum: int, frame) -> None:
        bt.logging.info(f'Received signal {signum}, shutting down...')
        bot.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    bt.logging.info(f'Starting forgelink {__version__} with {config.masked()}')
    try:
        bot.run()
    except MatrixError as e:
        bt.logging.error(f'Unable to start forgelink: {e}')
        bot.stop()
        sys.exit(1)


@cli.command('login')
@click.option('--user', envvar='MATRIX_USER', required=True, help='Matrix user name')
@click.option('--password', envvar='MATRIX_PASSWORD', required=True, hide_input=True, help='Matrix password')
@click.option('--homeserver', envvar='MATRIX_HOMESERVER', default=DEFAULT_MATRIX_HOMESERVER, show_default=True)
def login_command(user: str, password: str, homeserver: str):
    """Log in with a password and print an access token for the bot's config."""
    try:
        token = MatrixClient.password_login(homeserver, user, password)
    except MatrixError as e:
        console.print(f'[red]Login failed: {e}[/red]')
        sys.exit(1)

    console.print("[green]Copy this access token to your bot's config:[/green]")
    click.echo(token)


@cli.command('lookup')
@click.argument('numbers', nargs=-1, type=int, required=True)
@click.option('--style', type=click.Choice(MESSAGE_STYLES), default=None, help='Message style (default: from config)')
@env_file_option
def lookup_command(numbers: Tuple[int, ...], style: Optional[str], env_file: Optional[str]):
    """Resolve issue or pull request numbers and print the message the bot would send."""
    try:
        config = load_config(env_file, require_matrix=False)
    except ConfigError as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)

    style = style or config.message_style
    github = GitHubClient(config.github_access_token, config.github_owner, config.github_repo)
    links = IssueResolver(github).resolve_many(list(numbers))

    if not links:
        console.print('[yellow]No matching issues or pull requests found[/yellow]')
        return

    click.echo(make_list(style, format_link_lines(style, links)))


@cli.command('config')
@env_file_option
def config_command(env_file: Optional[str]):
    """Show the resolved configuration (secrets masked)."""
    try:
        config = load_config(env_file, require_matrix=False)
    except ConfigError as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)

    table = Table(show_header=True)
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')
    for key, value in config.masked().items():
        table.add_row(key, value)

    console.print('\n[bold]Forgelink Configuration[/bold]\n')
    console.print(table)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
