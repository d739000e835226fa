"""
Main CLI module - Creates and configures the CLI group
"""

import click

from terminus_hotfix import __version__
from terminus_hotfix.config import Settings
from terminus_hotfix.errors import HotfixError
from .commands import ALL_COMMANDS


def create_cli_group():
    """
    Creates and returns the CLI group with its commands.

    Returns:
        click.Group: Configured CLI group
    """

    @click.group()
    @click.version_option(__version__, prog_name='terminus-hotfix')
    @click.option(
        '--config', 'config_file',
        type=click.Path(dir_okay=False),
        default=None,
        help='Configuration file (default: $TERMINUS_HOTFIX_CONFIG or ~/.terminus-hotfix/config)'
    )
    @click.pass_context
    def hotfix(ctx, config_file):
        """Hotfix workflow for Pantheon sites - branch a multidev off test/live and deploy it back"""
        try:
            ctx.obj = Settings(config_file)
        except HotfixError as e:
            raise click.ClickException(str(e))

    @hotfix.group()
    def env():
        """Create hotfix environments and deploy them to test or live."""

    for cmd_name, command in ALL_COMMANDS.items():
        env.add_command(command, cmd_name)

    return hotfix


def main():
    "Entry point of the terminus-hotfix script"
    create_cli_group()()
