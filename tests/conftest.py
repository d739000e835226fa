"""
Shared pytest fixtures for terminus_hotfix tests.
"""

import os
import pytest
from unittest.mock import Mock

from terminus_hotfix.config import Settings
from terminus_hotfix.gateway import Environment, Gateway, Site, WorkflowRecord
from terminus_hotfix.hotfix_manager import HotfixManager
from terminus_hotfix.poller import JobResult, JobState


class FakeClock:
    """Clock advanced only by its own sleep()."""

    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_job(job_id='job-1', state=JobState.SUCCEEDED, message='Job succeeded.'):
    """Job handle mock finishing on first check."""
    job = Mock()
    job.id = job_id
    job.check.return_value = JobResult(state, message)
    return job


def deploy_workflow(env_id='live', created_at=2000.0, result='succeeded'):
    return WorkflowRecord(
        id='wf-deploy',
        description=f'Deploy code to "{env_id}"',
        created_at=created_at,
        status=result or 'running',
        finished=result is not None,
        successful=result == 'succeeded')


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never read the developer's own configuration or token."""
    monkeypatch.setenv('TERMINUS_HOTFIX_CONFIG', str(tmp_path / 'missing-config'))
    monkeypatch.delenv('TERMINUS_MACHINE_TOKEN', raising=False)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        temp_dir=str(tmp_path / 'tmp'),
        job_poll_interval=1.0,
        job_poll_backoff=1.0,
        job_timeout=100.0,
        deploy_poll_interval=5.0,
        deploy_timeout=60.0)


@pytest.fixture
def site():
    return Site(id='1234-abcd', name='my-site', frozen=False)


@pytest.fixture
def environments(site):
    """Fully resolved environments of my-site."""
    return {
        'dev': Environment('dev', site.name, 'master', True),
        'test': Environment('test', site.name, 'pantheon_test_3', True),
        'live': Environment('live', site.name, 'pantheon_live_7', True),
        'hotfix': Environment('hotfix', site.name, 'hotfix', True),
    }


@pytest.fixture
def mock_gateway(site, environments):
    """
    Gateway mock of a healthy site with dev/test/live and a hotfix multidev.

    Every remote job succeeds on first check; the latest workflow is a
    successful live deployment created at t=2000.
    """
    gateway = Mock(spec=Gateway)
    gateway.get_site.return_value = site
    gateway.get_environment.side_effect = lambda site_, env_id: environments[env_id]
    gateway.list_environments.return_value = {
        env_id: Environment(env_id, site.name)
        for env_id in ('dev', 'test', 'live', 'hotfix', 'feature')
    }
    gateway.get_connection_info.return_value = {
        'git_url': 'ssh://codeserver.dev.1234-abcd@codeserver.dev.1234-abcd.drush.in:2222/~/repository.git'
    }
    gateway.list_branches.return_value = ['master', 'hotfix', 'feature']
    gateway.create_environment.return_value = make_job('job-create', message='Created the environment.')
    gateway.create_backup.return_value = make_job('job-backup', message='Backup created.')
    gateway.change_connection_mode.return_value = 'The connection mode is already set to git.'
    gateway.clear_cache.return_value = make_job('job-cc', message='Caches cleared.')
    gateway.list_workflows.return_value = [deploy_workflow('live')]
    return gateway


@pytest.fixture
def mock_hgit():
    """HGit mock whose clone() creates the working copy directory."""
    hgit = Mock()

    def clone(url):
        os.makedirs(hgit.work_dir)
        return hgit

    hgit.clone.side_effect = clone
    return hgit


@pytest.fixture
def hgit_factory(mock_hgit):
    def factory(work_dir):
        mock_hgit.work_dir = work_dir
        return mock_hgit
    return Mock(side_effect=factory)


@pytest.fixture
def confirm():
    return Mock(return_value=True)


@pytest.fixture
def manager(mock_gateway, settings, confirm, hgit_factory, fake_clock):
    return HotfixManager(
        mock_gateway, settings,
        confirm=confirm,
        hgit_factory=hgit_factory,
        sleep=fake_clock.sleep,
        clock=fake_clock,
        wall_clock=lambda: 1000.0)


@pytest.fixture
def job_factory():
    return make_job


@pytest.fixture
def workflow_factory():
    return deploy_workflow
