"""
terminus-hotfix exception hierarchy

Exception Hierarchy:
    HotfixError (base)
    ├── InvalidNameError (multidev name too long)
    ├── InvalidOptionError (unknown or mistyped option)
    ├── FrozenSiteError (source site is frozen)
    ├── EnvironmentAlreadyExistsError / BranchAlreadyExistsError
    ├── InvalidTargetEnvironmentError / InvalidSourceEnvironmentError
    ├── MultidevNotFoundError
    ├── CommandExecutionError (git command returned non-zero)
    ├── RemoteJobFailedError (remote workflow finished unsuccessfully)
    │   └── JobTimeoutError
    │       └── DeploymentTimeoutError
    ├── GatewayError (remote API transport failures)
    └── WorkspaceLockedError (site workspace held by another run)

Usage:
    >>> try:
    ...     manager.deploy("my-site.live", "hotfix")
    ... except MultidevNotFoundError as e:
    ...     print(e)
"""


class HotfixError(Exception):
    """
    Base exception for all hotfix workflow errors.

    Attributes:
        message (str): Human-readable error message
        context (dict): Additional context information
    """

    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class InvalidNameError(HotfixError):
    """Raised when the multidev name breaks the platform naming rules."""


class InvalidOptionError(HotfixError):
    """Raised when an option is unknown or has the wrong type."""


class FrozenSiteError(HotfixError):
    """Raised when the requested site is frozen."""


class EnvironmentAlreadyExistsError(HotfixError):
    """Raised when both the multidev branch and environment already exist."""


class BranchAlreadyExistsError(HotfixError):
    """Raised when the multidev branch already exists on the remote."""


class InvalidTargetEnvironmentError(HotfixError):
    """Raised when deploying to anything other than test or live."""


class InvalidSourceEnvironmentError(HotfixError):
    """Raised when deploying from test or live."""


class MultidevNotFoundError(HotfixError):
    """Raised when the source multidev environment does not exist."""


class CommandExecutionError(HotfixError):
    """
    Raised when a git command exits with a non-zero status.

    Attributes:
        command (str): The command line that failed
        status (int): Its exit status
        stderr (str): Captured error output, if any
    """

    def __init__(self, command: str, status: int, stderr: str = ''):
        self.command = command
        self.status = status
        self.stderr = (stderr or '').strip()
        message = f"Command {command} failed with exit code {status}"
        if self.stderr:
            message = f"{message}\n{self.stderr}"
        super().__init__(message, {'command': command, 'status': status})


class RemoteJobFailedError(HotfixError):
    """Raised when a remote workflow terminates unsuccessfully."""


class JobTimeoutError(RemoteJobFailedError):
    """Raised when a remote workflow does not finish within its time budget."""


class DeploymentTimeoutError(JobTimeoutError):
    """Raised when the triggered deployment is not seen completing in time."""


class GatewayError(HotfixError):
    """Raised when the remote platform API cannot be reached or answers badly."""


class WorkspaceLockedError(HotfixError):
    """Raised when another invocation is already working on the same site."""
