"""
Deployment Watcher

Waits for the deployment triggered by pushing a pantheon_<env>_<n> tag.
The platform does not hand back a job for a tag push, so the watcher looks
for the most recent 'Deploy code to "<env>"' workflow of the site created
after the push, until it is finished. Later workflows (cache clears, hooks)
may be listed above it.
"""

import time
from typing import Callable, Optional

from terminus_hotfix import utils
from terminus_hotfix.errors import DeploymentTimeoutError, RemoteJobFailedError
from terminus_hotfix.gateway import Gateway, Site, WorkflowRecord
from terminus_hotfix.poller import JobResult, JobState, poll

DEPLOY_DESCRIPTION = 'Deploy code to "{env}"'


class DeploymentWatcher:
    """
    Bounded wait on the deployment workflow of an environment.

    Args:
        gateway: Remote gateway
        site: Site being deployed
        poll_interval: Seconds between two looks at the workflow list
        timeout: Total wait budget in seconds
    """

    def __init__(self, gateway: Gateway, site: Site, poll_interval: float = 5.0,
                 timeout: float = 60.0, sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.__gateway = gateway
        self.__site = site
        self.__poll_interval = poll_interval
        self.__timeout = timeout
        self.__sleep = sleep
        self.__clock = clock

    @staticmethod
    def expected_description(env_id: str) -> str:
        return DEPLOY_DESCRIPTION.format(env=env_id)

    def wait(self, env_id: str, since: float) -> WorkflowRecord:
        """
        Block until the deployment of env_id created after since succeeds.

        Args:
            env_id: Deployed environment (test or live)
            since: Epoch timestamp taken just before the tag push

        Returns:
            WorkflowRecord: the successful deployment workflow

        Raises:
            RemoteJobFailedError: the deployment workflow failed
            DeploymentTimeoutError: no successful deployment seen in time
        """
        expected = self.expected_description(env_id)
        seen: dict = {}

        def check() -> JobResult:
            workflows = self.__gateway.list_workflows(self.__site)
            deployment: Optional[WorkflowRecord] = next(
                (w for w in workflows if w.description == expected and w.created_at > since),
                None)
            if deployment is not None:
                utils.notice(f"Workflow '{deployment.description}' {deployment.status}.")
                seen['workflow'] = deployment
                return deployment.as_result()
            if not workflows:
                utils.notice(f"No workflow found yet; waiting for '{expected}'")
            else:
                utils.notice(
                    f"Current workflow is '{workflows[0].description}'; waiting for '{expected}'")
            return JobResult.pending()

        result = poll(check, self.__poll_interval, timeout=self.__timeout,
                      sleep=self.__sleep, clock=self.__clock)
        if result.state is JobState.FAILED:
            raise RemoteJobFailedError(result.message, {'env': env_id})
        if result.state is JobState.TIMED_OUT:
            raise DeploymentTimeoutError(
                f"The deployment to {self.__site.name}.{env_id} was not seen completing "
                f"within {self.__timeout:g} seconds. The tag has been pushed; check the "
                f"site dashboard before retrying.",
                {'site': self.__site.name, 'env': env_id})
        return seen['workflow']
