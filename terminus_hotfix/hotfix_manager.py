"""
HotfixManager module for terminus-hotfix

Runs the two hotfix workflows against a site of the hosting platform:

- create_environment(): branch a multidev off the reference deployed on
  test or live and provision the environment.
- deploy(): tag the multidev, rebase master onto the tag, force-push master,
  push the tag to trigger the deployment and wait for it.

Both workflows share context resolution, the scratch working copy and its
cleanup. Preconditions are all checked before the first mutating step.
"""

import os
import re
import shutil
import time
from contextlib import contextmanager
from typing import Callable, Optional

import click

from terminus_hotfix import utils
from terminus_hotfix.config import Settings
from terminus_hotfix.context import ContextResolver, WorkflowContext, parse_site_env
from terminus_hotfix.decorators import with_site_lock
from terminus_hotfix.errors import (
    BranchAlreadyExistsError,
    EnvironmentAlreadyExistsError,
    HotfixError,
    InvalidSourceEnvironmentError,
    InvalidTargetEnvironmentError,
    MultidevNotFoundError,
)
from terminus_hotfix.gateway import Gateway
from terminus_hotfix.hgit import HGit
from terminus_hotfix.poller import JobResult, wait_for_job
from terminus_hotfix.watcher import DeploymentWatcher

TAG_PREFIX = 'pantheon_{env}_'
DEPLOY_TARGETS = ('test', 'live')
MAINLINE_BRANCH = 'master'
BACKUP_RETENTION_DAYS = 365
# seconds the local clock may run ahead of the platform
CLOCK_SKEW_TOLERANCE = 30


def calculate_next_tag(env_id: str, deployed_ref: Optional[str]) -> str:
    """
    Returns the deployment tag following deployed_ref on env_id.

    The number following 'pantheon_<env>_' is incremented. A reference
    without such a number (a branch like 'master') counts as tag 0.

    Examples:
        >>> calculate_next_tag('live', 'pantheon_live_7')
        'pantheon_live_8'
        >>> calculate_next_tag('live', 'master')
        'pantheon_live_1'
    """
    prefix = TAG_PREFIX.format(env=env_id)
    match = re.match(r'\d+', (deployed_ref or '').replace(prefix, ''))
    current = int(match.group()) if match else 0
    return f"{prefix}{current + 1}"


class HotfixManager:
    """
    Orchestrates the hotfix workflows of a site.

    Args:
        gateway: Remote platform gateway
        settings: terminus-hotfix settings (poll intervals, timeouts, temp dir)
        confirm: Callable asking the operator a yes/no question
        hgit_factory: Callable building the HGit of a working copy directory
        sleep, clock: Injected into the pollers
        wall_clock: Epoch clock used as the deployment baseline

    Examples:
        manager = HotfixManager(gateway)
        manager.create_environment('my-site.live', 'hotfix')
        result = manager.deploy('my-site.live', 'hotfix', cc=True)
    """

    def __init__(self, gateway: Gateway, settings: Optional[Settings] = None,
                 confirm: Optional[Callable[[str], bool]] = None,
                 hgit_factory: Callable[[str], HGit] = HGit,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        self._gateway = gateway
        self.settings = settings or Settings()
        self._confirm = confirm or (lambda text: click.confirm(text, default=False))
        self._hgit_factory = hgit_factory
        self._sleep = sleep
        self._clock = clock
        self._wall_clock = wall_clock

    def _site_of(self, site_env, *args, **kwargs):
        return parse_site_env(site_env)[0]

    def _resolve(self, site_env: str, multidev: str, options: dict) -> WorkflowContext:
        return ContextResolver(self._gateway, self.settings).resolve(site_env, multidev, options)

    def git_ref(self, site_env: str) -> str:
        """
        Returns the deployed git reference (tag or branch) of site_env.

        Raises:
            FrozenSiteError: if the site is frozen
        """
        _, environment = ContextResolver(self._gateway, self.settings).resolve_environment(site_env)
        return environment.deployed_ref

    @with_site_lock(_site_of)
    def create_environment(self, site_env: str, multidev: str = 'hotfix', **options) -> dict:
        """
        Create the multidev environment from the reference deployed on site_env.

        Workflow:
        1. Check the multidev branch does not exist yet
        2. Clone the site in a clean working copy
        3. Fetch all tags
        4. Check out the reference deployed on the source environment
        5. Create the multidev branch and push it with upstream tracking
        6. Create the multidev environment and wait for the platform job
        7. Delete the working copy (unless cleanup_temp_dir is False)

        Args:
            site_env: '<site>.<env>' of the source environment
            multidev: Name of the multidev environment (at most 11 chars)
            options: cleanup_temp_dir

        Returns:
            dict: site, source, multidev, git_ref, message

        Raises:
            EnvironmentAlreadyExistsError: branch and environment exist
            BranchAlreadyExistsError: branch exists without environment
            CommandExecutionError: a git command failed
            RemoteJobFailedError: the environment creation failed
        """
        context = self._resolve(site_env, multidev, options)
        site, source = context.site, context.environment

        if multidev in context.branches:
            if multidev in context.environments:
                raise EnvironmentAlreadyExistsError(
                    f"An environment for the provided multidev environment {multidev} already "
                    f"exists for the site {site.name}. Run "
                    f"terminus multidev:delete {site.name}.{multidev} --delete-branch "
                    f"to delete it or choose a different multidev name and try again.",
                    {'site': site.name, 'multidev': multidev})
            raise BranchAlreadyExistsError(
                f"A git branch for the provided multidev environment {multidev} already exists "
                f"for the site {site.name}. Please delete the remote git branch or choose a "
                f"different multidev name and try again.",
                {'site': site.name, 'multidev': multidev})

        with self._workspace(context) as hgit:
            hgit.fetch_tags()
            hgit.checkout(source.deployed_ref)
            hgit.checkout_new_branch(multidev)
            hgit.push_branch(multidev, set_upstream=True)

            utils.notice(f"Creating the {multidev} multidev environment on {site.name}...")
            job = self._gateway.create_environment(site, multidev, source.id)
            result = self._wait(job)
            utils.notice(result.message)

        return {
            'site': site.name,
            'source': source.id,
            'multidev': multidev,
            'git_ref': source.deployed_ref,
            'message': result.message,
        }

    @with_site_lock(_site_of)
    def deploy(self, site_env: str, multidev: str = 'hotfix', **options) -> dict:
        """
        Deploy the hotfix of a multidev to test or live and rebase it to master.

        Workflow:
        1. Validate target (test/live) and source (not test/live)
        2. Resolve the context; the multidev must exist
        3. Clone the site, check out the multidev, fetch all tags
        4. Compute the next pantheon_<env>_<n> tag and create it at HEAD
        5. Check out master and rebase it onto the tag
        6. Ask the operator for confirmation (decline: cleanup and return)
        7. Backup dev (create_backup)
        8. Put dev in git mode
        9. Force-push master
        10. Backup the target environment (create_backup)
        11. Push the tag, triggering the deployment
        12. Wait for the deployment workflow
        13. Clear caches of the target environment (cc)
        14. Delete the working copy (unless cleanup_temp_dir is False)

        Args:
            site_env: '<site>.<env>' of the target environment
            multidev: Name of the source multidev environment
            options: cleanup_temp_dir, create_backup, cc, merge_strategy, message

        Returns:
            dict: site, env, multidev, previous_ref, tag, deployed (False
            when the operator declined), workflow

        Raises:
            InvalidTargetEnvironmentError: target is not test or live
            InvalidSourceEnvironmentError: source is test or live
            MultidevNotFoundError: the multidev environment does not exist
            CommandExecutionError: a git command failed (nothing is retried)
            RemoteJobFailedError: a backup, mode change, deployment or cache
                clear failed
            DeploymentTimeoutError: the deployment was not seen completing
        """
        site_name, env_id = parse_site_env(site_env)
        if env_id not in DEPLOY_TARGETS:
            raise InvalidTargetEnvironmentError(
                f"You can not deploy a hotfix to {env_id}. Please try again with test or live.",
                {'env': env_id})
        if multidev in DEPLOY_TARGETS:
            raise InvalidSourceEnvironmentError(
                f"You can not deploy a hotfix from the {multidev} environment. You can only "
                f"deploy a hotfix from the dev or a multidev environment.",
                {'multidev': multidev})

        context = self._resolve(site_env, multidev, options)
        site, target, opts = context.site, context.environment, context.options
        if multidev not in context.environments:
            raise MultidevNotFoundError(
                f"An environment for the provided multidev environment {multidev} could not be "
                f"found for the site {site.name}. You can create one with "
                f"terminus hotfix:env:create {site.name}.live {multidev}",
                {'site': site.name, 'multidev': multidev})

        result = {
            'site': site.name,
            'env': target.id,
            'multidev': multidev,
            'previous_ref': target.deployed_ref,
            'tag': None,
            'deployed': False,
            'workflow': None,
        }
        with self._workspace(context) as hgit:
            hgit.checkout(multidev)
            hgit.fetch_tags()

            next_tag = calculate_next_tag(target.id, target.deployed_ref)
            result['tag'] = next_tag
            utils.notice(
                f"Creating the tag {next_tag} from the previous reference of "
                f"{target.deployed_ref} on {site.name}...")
            hgit.create_tag(next_tag, opts.message)

            utils.notice(
                f"Rebasing the changes from {multidev} back to {MAINLINE_BRANCH} with "
                f"strategy {opts.merge_strategy or 'none'} on {site.name}...")
            hgit.checkout(MAINLINE_BRANCH)
            hgit.rebase(next_tag, opts.merge_strategy or None)

            question = (
                f"Are you sure you want to hotfix deploy the changes from the {multidev} "
                f"straight to the {target.id} environment on {site.name}?")
            if not self._confirm(question):
                utils.notice('Hotfix deployment cancelled.')
                return result

            if opts.create_backup:
                self._create_backup(context, 'dev')
            self._ensure_git_mode(context)
            hgit.push(MAINLINE_BRANCH, force=True)
            if opts.create_backup:
                self._create_backup(context, target.id)

            since = self._wall_clock() - CLOCK_SKEW_TOLERANCE
            hgit.push(next_tag)
            result['workflow'] = self._watcher(context).wait(target.id, since)

            if opts.cc:
                self._clear_cache(context)

            result['deployed'] = True
            utils.notice(utils.Color.green(
                f"Successfully deployed the hotfix changes from {multidev} to "
                f"{target.id} on {site.name}."))
        return result

    @contextmanager
    def _workspace(self, context: WorkflowContext):
        """Clean clone of the site, deleted on normal exit.

        On error the working copy is kept so the operator can recover by hand.
        """
        hgit = self._prepare_workspace(context)
        try:
            yield hgit
        except HotfixError:
            utils.warning(f"The working copy {context.git_dir} was kept for manual recovery.")
            raise
        self._cleanup(context)

    def _prepare_workspace(self, context: WorkflowContext) -> HGit:
        if not os.path.isdir(context.temp_dir):
            utils.notice(f"Creating the temporary {context.temp_dir} directory...")
            os.makedirs(context.temp_dir, mode=0o700, exist_ok=True)
        os.chmod(context.temp_dir, 0o700)
        if os.path.exists(context.git_dir):
            utils.notice(f"Deleting the temporary {context.git_dir} directory...")
            shutil.rmtree(context.git_dir)
        utils.notice(f"Cloning code for {context.site_env} to {context.git_dir}...")
        return self._hgit_factory(context.git_dir).clone(context.git_url)

    def _cleanup(self, context: WorkflowContext) -> None:
        if context.options.cleanup_temp_dir and os.path.exists(context.git_dir):
            utils.notice(f"Deleting the temporary {context.git_dir} directory...")
            shutil.rmtree(context.git_dir)

    def _wait(self, job) -> JobResult:
        return wait_for_job(
            job,
            self.settings.job_poll_interval,
            timeout=self.settings.job_timeout,
            backoff=self.settings.job_poll_backoff,
            max_interval=self.settings.job_poll_max_interval,
            sleep=self._sleep,
            clock=self._clock)

    def _watcher(self, context: WorkflowContext) -> DeploymentWatcher:
        return DeploymentWatcher(
            self._gateway, context.site,
            poll_interval=self.settings.deploy_poll_interval,
            timeout=self.settings.deploy_timeout,
            sleep=self._sleep,
            clock=self._clock)

    def _create_backup(self, context: WorkflowContext, env_id: str, element: str = 'all'):
        site_env = f"{context.site.name}.{env_id}"
        what = 'the code, database and media files' if element == 'all' else f"the {element}"
        utils.notice(f"Creating a backup of {what} on the {site_env} environment...")
        job = self._gateway.create_backup(
            context.site, env_id,
            element=None if element == 'all' else element,
            keep_for=BACKUP_RETENTION_DAYS)
        self._wait(job)
        utils.notice(f"Finished backing up {what} on the {site_env} environment.")

    def _ensure_git_mode(self, context: WorkflowContext):
        workflow = self._gateway.change_connection_mode(context.site, 'dev', 'git')
        if isinstance(workflow, str):
            utils.notice(workflow)
            return
        utils.notice(self._wait(workflow).message)

    def _clear_cache(self, context: WorkflowContext):
        env_id = context.environment.id
        utils.notice(f"Clearing caches on {context.site.name}.{env_id}...")
        self._wait(self._gateway.clear_cache(context.site, env_id))
        utils.notice(f"Caches cleared on {context.site.name}.{env_id}.")
