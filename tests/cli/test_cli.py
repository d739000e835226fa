"""
Tests for the terminus-hotfix command line.

The gateway and the manager are patched: these tests only cover argument
parsing, option forwarding, output and error reporting.
"""

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from terminus_hotfix.cli import create_cli_group
from terminus_hotfix.errors import FrozenSiteError, MultidevNotFoundError


@pytest.fixture
def cli():
    return create_cli_group()


@pytest.fixture
def runner():
    return CliRunner()


def patched(command):
    """Patch the gateway and the manager used by a command module."""
    module = f'terminus_hotfix.cli.commands.{command}'
    return (patch(f'{module}.PantheonGateway'), patch(f'{module}.HotfixManager'))


class TestCliGroup:
    """Test the command groups."""

    def test_help_lists_commands(self, cli, runner):
        result = runner.invoke(cli, ['env', '--help'])

        assert result.exit_code == 0
        for command in ('git-ref', 'create', 'deploy'):
            assert command in result.output

    def test_version(self, cli, runner):
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert '0.1.0' in result.output

    def test_bad_config_file(self, cli, runner, tmp_path):
        config_file = tmp_path / 'config'
        config_file.write_text('[terminus-hotfix]\ndeploy_timeout = never\n')

        result = runner.invoke(cli, ['--config', str(config_file), 'env', 'git-ref', 'my-site.live'])

        assert result.exit_code == 1
        assert 'deploy_timeout' in result.output


class TestGitRefCommand:
    """Test 'env git-ref'."""

    def test_prints_reference(self, cli, runner):
        gateway_patch, manager_patch = patched('git_ref')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.git_ref.return_value = 'pantheon_live_7'

            result = runner.invoke(cli, ['env', 'git-ref', 'my-site.live'])

        assert result.exit_code == 0
        assert result.output.strip() == 'pantheon_live_7'
        manager_cls.return_value.git_ref.assert_called_once_with('my-site.live')

    def test_error(self, cli, runner):
        gateway_patch, manager_patch = patched('git_ref')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.git_ref.side_effect = FrozenSiteError(
                'The requested site my-site is frozen.')

            result = runner.invoke(cli, ['env', 'git-ref', 'my-site.live'])

        assert result.exit_code == 1
        assert 'Error: The requested site my-site is frozen.' in result.output


class TestCreateCommand:
    """Test 'env create'."""

    RESULT = {
        'site': 'my-site', 'source': 'live', 'multidev': 'hotfix',
        'git_ref': 'pantheon_live_7', 'message': 'Created.',
    }

    def test_default_multidev(self, cli, runner):
        gateway_patch, manager_patch = patched('create')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.create_environment.return_value = self.RESULT

            result = runner.invoke(cli, ['env', 'create', 'my-site.live'])

        assert result.exit_code == 0, result.output
        manager_cls.return_value.create_environment.assert_called_once_with(
            'my-site.live', 'hotfix', cleanup_temp_dir=True)
        assert 'my-site.hotfix' in result.output
        assert 'terminus-hotfix env deploy my-site.live hotfix' in result.output

    def test_keep_temp_dir(self, cli, runner):
        gateway_patch, manager_patch = patched('create')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.create_environment.return_value = dict(self.RESULT, multidev='fix')

            result = runner.invoke(cli, ['env', 'create', 'my-site.test', 'fix', '--cleanup-temp-dir=false'])

        assert result.exit_code == 0, result.output
        manager_cls.return_value.create_environment.assert_called_once_with(
            'my-site.test', 'fix', cleanup_temp_dir=False)


class TestDeployCommand:
    """Test 'env deploy'."""

    RESULT = {
        'site': 'my-site', 'env': 'live', 'multidev': 'hotfix',
        'previous_ref': 'pantheon_live_7', 'tag': 'pantheon_live_8',
        'deployed': True, 'workflow': None,
    }

    def test_defaults(self, cli, runner):
        gateway_patch, manager_patch = patched('deploy')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.deploy.return_value = self.RESULT

            result = runner.invoke(cli, ['env', 'deploy', 'my-site.live'])

        assert result.exit_code == 0, result.output
        manager_cls.return_value.deploy.assert_called_once_with(
            'my-site.live', 'hotfix',
            cleanup_temp_dir=True, cc=False, create_backup=False,
            merge_strategy='theirs', message='Hotfix deployment')
        assert manager_cls.call_args.kwargs['confirm'] is None
        assert 'Hotfix deployed successfully!' in result.output
        assert 'pantheon_live_8' in result.output

    def test_all_options(self, cli, runner):
        gateway_patch, manager_patch = patched('deploy')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.deploy.return_value = self.RESULT

            result = runner.invoke(cli, [
                'env', 'deploy', 'my-site.test', 'fix',
                '--cc=true', '--create-backup=true', '--cleanup-temp-dir=false',
                '--merge-strategy=', '--message', 'Fix login', '--yes'])

        assert result.exit_code == 0, result.output
        manager_cls.return_value.deploy.assert_called_once_with(
            'my-site.test', 'fix',
            cleanup_temp_dir=False, cc=True, create_backup=True,
            merge_strategy='', message='Fix login')
        assert manager_cls.call_args.kwargs['confirm']('Deploy?') is True

    def test_declined(self, cli, runner):
        gateway_patch, manager_patch = patched('deploy')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.deploy.return_value = dict(self.RESULT, deployed=False)

            result = runner.invoke(cli, ['env', 'deploy', 'my-site.live'])

        assert result.exit_code == 0
        assert 'Deployment of hotfix to my-site.live cancelled.' in result.output
        assert 'successfully' not in result.output

    def test_error(self, cli, runner):
        gateway_patch, manager_patch = patched('deploy')
        with gateway_patch, manager_patch as manager_cls:
            manager_cls.return_value.deploy.side_effect = MultidevNotFoundError(
                'An environment for the provided multidev environment fix could not be found')

            result = runner.invoke(cli, ['env', 'deploy', 'my-site.live', 'fix'])

        assert result.exit_code == 1
        assert 'could not be found' in result.output

    def test_invalid_boolean(self, cli, runner):
        result = runner.invoke(cli, ['env', 'deploy', 'my-site.live', '--cc=maybe'])

        assert result.exit_code == 2
