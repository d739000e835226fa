"""
create command implementation.

Thin CLI layer that delegates to HotfixManager for business logic.
"""

import click

from terminus_hotfix import utils
from terminus_hotfix.config import Settings
from terminus_hotfix.errors import HotfixError
from terminus_hotfix.gateway import PantheonGateway
from terminus_hotfix.hotfix_manager import HotfixManager


@click.command('create')
@click.argument('site_env', type=str)
@click.argument('multidev', type=str, default='hotfix')
@click.option(
    '--cleanup-temp-dir',
    type=click.BOOL,
    default=True,
    show_default=True,
    help='Delete the temporary git clone once the environment is created'
)
@click.pass_obj
def create(settings, site_env: str, multidev: str, cleanup_temp_dir: bool) -> None:
    """
    Create a hotfix environment from the test or live environment.

    Creates the MULTIDEV environment (default: hotfix) of the site with
    code, database and files from the environment of SITE_ENV
    (<site>.<env>), by checking out the git reference deployed on it.

    \b
    Examples:
        $ terminus-hotfix env create my-site.live
        $ terminus-hotfix env create my-site.test fix-login --cleanup-temp-dir=false
    """
    settings = settings or Settings()
    try:
        with PantheonGateway(settings.api_url, settings.machine_token) as gateway:
            manager = HotfixManager(gateway, settings)
            result = manager.create_environment(
                site_env, multidev, cleanup_temp_dir=cleanup_temp_dir)
    except HotfixError as e:
        raise click.ClickException(str(e))

    deploy_cmd = f"terminus-hotfix env deploy {result['site']}.live {result['multidev']}"
    click.echo(f"✓ Created environment: {utils.Color.bold(result['site'] + '.' + result['multidev'])}")
    click.echo(f"✓ Branched from: {utils.Color.bold(result['git_ref'])} ({result['source']})")
    click.echo()
    click.echo("📝 Next steps:")
    click.echo(f"  1. Commit and push your fix to the {result['multidev']} branch")
    click.echo(f"  2. Run: {utils.Color.bold(deploy_cmd)}")
