"""
git-ref command implementation.

Thin CLI layer that delegates to HotfixManager.
"""

import click

from terminus_hotfix.config import Settings
from terminus_hotfix.errors import HotfixError
from terminus_hotfix.gateway import PantheonGateway
from terminus_hotfix.hotfix_manager import HotfixManager


@click.command('git-ref')
@click.argument('site_env', type=str)
@click.pass_obj
def git_ref(settings, site_env: str) -> None:
    """
    Print the git reference deployed on an environment.

    SITE_ENV is given as <site>.<env>.

    \b
    Examples:
        $ terminus-hotfix env git-ref my-site.live
        pantheon_live_7
    """
    settings = settings or Settings()
    try:
        with PantheonGateway(settings.api_url, settings.machine_token) as gateway:
            ref = HotfixManager(gateway, settings).git_ref(site_env)
    except HotfixError as e:
        raise click.ClickException(str(e))
    click.echo(ref)
