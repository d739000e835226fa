"""
Commands module for terminus-hotfix CLI

Provides the individual command implementations of the 'env' group.
"""

from .git_ref import git_ref
from .create import create
from .deploy import deploy

# Registry of all available commands
ALL_COMMANDS = {
    'git-ref': git_ref,
    'create': create,
    'deploy': deploy,
}

__all__ = [
    'git_ref',
    'create',
    'deploy',
    'ALL_COMMANDS'
]
