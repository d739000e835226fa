"""
deploy command implementation.

Thin CLI layer that delegates to HotfixManager for business logic.
"""

import click

from terminus_hotfix import utils
from terminus_hotfix.config import Settings
from terminus_hotfix.errors import HotfixError
from terminus_hotfix.gateway import PantheonGateway
from terminus_hotfix.hotfix_manager import HotfixManager


@click.command('deploy')
@click.argument('site_env', type=str)
@click.argument('multidev', type=str, default='hotfix')
@click.option(
    '--cleanup-temp-dir',
    type=click.BOOL,
    default=True,
    show_default=True,
    help='Delete the temporary git clone after the deployment'
)
@click.option(
    '--cc',
    type=click.BOOL,
    default=False,
    show_default=True,
    help='Clear caches after the deployment'
)
@click.option(
    '--create-backup',
    type=click.BOOL,
    default=False,
    show_default=True,
    help='Back up dev before the force-push and the target before the deployment'
)
@click.option(
    '--merge-strategy',
    type=str,
    default='theirs',
    show_default=True,
    help='Strategy option (-X) used when rebasing master onto the hotfix; empty for none'
)
@click.option(
    '--message',
    type=str,
    default='Hotfix deployment',
    show_default=True,
    help='Annotation of the deployment tag'
)
@click.option(
    '--yes', '-y',
    is_flag=True,
    help='Do not ask for confirmation before deploying'
)
@click.pass_obj
def deploy(settings, site_env: str, multidev: str, cleanup_temp_dir: bool, cc: bool,
           create_backup: bool, merge_strategy: str, message: str, yes: bool) -> None:
    """
    Deploy a hotfix from a multidev environment to test or live.

    Tags the MULTIDEV branch (default: hotfix) with the next
    pantheon_<env>_<n> tag, rebases master onto it, force-pushes master and
    pushes the tag to deploy it on SITE_ENV (<site>.test or <site>.live).

    \b
    Examples:
        $ terminus-hotfix env deploy my-site.live
        $ terminus-hotfix env deploy my-site.test fix-login --cc=true --create-backup=true
        $ terminus-hotfix env deploy my-site.live --merge-strategy= --message "Fix login"

    \b
    Raises:
        click.ClickException: If validation fails or a step fails
    """
    settings = settings or Settings()
    confirm = (lambda text: True) if yes else None
    try:
        with PantheonGateway(settings.api_url, settings.machine_token) as gateway:
            manager = HotfixManager(gateway, settings, confirm=confirm)
            result = manager.deploy(
                site_env, multidev,
                cleanup_temp_dir=cleanup_temp_dir,
                cc=cc,
                create_backup=create_backup,
                merge_strategy=merge_strategy,
                message=message)
    except HotfixError as e:
        raise click.ClickException(str(e))

    if not result['deployed']:
        click.echo(f"Deployment of {result['multidev']} to {result['site']}.{result['env']} cancelled.")
        return

    click.echo(f"✓ {utils.Color.green('Hotfix deployed successfully!')}")
    click.echo()
    click.echo(f"  Site:            {utils.Color.bold(result['site'])}")
    click.echo(f"  Environment:     {utils.Color.bold(result['env'])}")
    click.echo(f"  From multidev:   {utils.Color.bold(result['multidev'])}")
    click.echo(f"  Previous ref:    {utils.Color.bold(result['previous_ref'])}")
    click.echo(f"  Deployed tag:    {utils.Color.bold(result['tag'])}")
