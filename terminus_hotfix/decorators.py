"""
Decorators for terminus-hotfix.

Provides the per-site workspace lock used by HotfixManager workflows.
"""

import os
from functools import wraps

from terminus_hotfix import utils
from terminus_hotfix.errors import WorkspaceLockedError


def _holder_alive(lock_file: str) -> bool:
    "True unless the lock file names a process that no longer exists"
    try:
        with open(lock_file, encoding='utf-8') as lock:
            pid = int(lock.read().strip())
    except (OSError, ValueError):
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def acquire_site_lock(scratch_dir: str, site_name: str) -> str:
    """
    Create the exclusive lock file of site_name in scratch_dir.

    A lock left by a process that no longer exists is removed first.

    Returns:
        str: the lock file path

    Raises:
        WorkspaceLockedError: if another running invocation holds the lock
    """
    os.makedirs(scratch_dir, mode=0o700, exist_ok=True)
    lock_file = os.path.join(scratch_dir, f"{site_name}.lock")
    if os.path.exists(lock_file) and not _holder_alive(lock_file):
        utils.warning(f"Removing the stale lock file {lock_file}.")
        release_site_lock(lock_file)
    try:
        fd = os.open(lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
    except FileExistsError as err:
        raise WorkspaceLockedError(
            f"Another hotfix workflow is running on {site_name} (lock file {lock_file}). "
            f"Remove the lock file if no other workflow is running.",
            {'site': site_name, 'lock_file': lock_file}) from err
    with os.fdopen(fd, 'w', encoding='utf-8') as lock:
        lock.write(str(os.getpid()))
    return lock_file


def release_site_lock(lock_file: str) -> None:
    "Remove the lock file"
    try:
        os.remove(lock_file)
    except FileNotFoundError:
        pass


def with_site_lock(site_getter):
    """
    Decorator to protect a workflow with a per-site lock.

    The working copy of a site lives at a fixed path, so two invocations
    on the same site must not run at the same time.

    Args:
        site_getter: Callable that takes (self, *args, **kwargs) and returns
            the site name

    Usage:
        def _site_of(self, site_env, *args, **kwargs):
            return parse_site_env(site_env)[0]

        @with_site_lock(_site_of)
        def deploy(self, site_env, multidev='hotfix'):
            ...

    Notes:
        - The decorated object must expose the settings as self.settings
        - The lock is ALWAYS released in the finally block, even on error
    """
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            lock_file = None
            try:
                site_name = site_getter(self, *args, **kwargs)
                lock_file = acquire_site_lock(self.settings.scratch_dir, site_name)
                return func(self, *args, **kwargs)
            finally:
                if lock_file:
                    release_site_lock(lock_file)

        return wrapper
    return decorator
