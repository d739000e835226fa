"""
Remote Site/Environment Gateway

Provides the records exchanged with the hosting platform (Site, Environment,
WorkflowRecord), the job handles returned by mutating calls, the abstract
Gateway consumed by the workflows and PantheonGateway, its implementation
over the Pantheon REST API.

Data crossing this boundary is normalized: string booleans become bool,
raw target references lose their refs/tags/ and refs/heads/ prefixes.
"""

import abc
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import httpx

from terminus_hotfix.errors import GatewayError
from terminus_hotfix.poller import JobResult, JobState
from terminus_hotfix.utils import as_bool

PLATFORM_DOMAIN = 'pantheonsite.io'
REF_PREFIXES = ('refs/tags/', 'refs/heads/')


def strip_ref(target_ref: Optional[str]) -> str:
    "Returns the tag or branch name of a raw target reference"
    target_ref = target_ref or ''
    for prefix in REF_PREFIXES:
        target_ref = target_ref.replace(prefix, '')
    return target_ref


@dataclass(frozen=True)
class Site:
    """A site of the hosting platform."""
    id: str
    name: str
    frozen: bool = False
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> 'Site':
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            frozen=as_bool(data.get('frozen')),
            raw=data)


@dataclass(frozen=True)
class Environment:
    """
    An environment of a site (dev, test, live or a multidev).

    Environments listed in bulk are minimal (resolved is False): only the
    id is reliable. Fully resolved environments also carry the deployed
    reference.
    """
    id: str
    site_name: str
    deployed_ref: Optional[str] = None
    resolved: bool = False
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def domain(self) -> str:
        return f"{self.id}-{self.site_name}.{PLATFORM_DOMAIN}"

    @property
    def url(self) -> str:
        return f"https://{self.domain}/"

    @classmethod
    def from_api(cls, site_name: str, env_id: str, data: dict, resolved: bool = True):
        return cls(
            id=env_id,
            site_name=site_name,
            deployed_ref=strip_ref(data.get('target_ref')) if resolved else None,
            resolved=resolved,
            raw=data)


@dataclass(frozen=True)
class WorkflowRecord:
    """A remote workflow (job) as listed by the platform."""
    id: str
    description: str
    created_at: float
    status: str
    finished: bool
    successful: bool
    reason: str = ''

    @classmethod
    def from_api(cls, data: dict) -> 'WorkflowRecord':
        result = data.get('result')
        finished = result is not None or data.get('finished_at') is not None
        final_task = data.get('final_task') or {}
        return cls(
            id=str(data.get('id', '')),
            description=data.get('description') or data.get('active_description') or '',
            created_at=float(data.get('created_at') or 0),
            status=result or 'running',
            finished=finished,
            successful=result == 'succeeded',
            reason=final_task.get('reason') or '')

    @property
    def message(self) -> str:
        "Human-readable outcome"
        if not self.finished:
            return f"{self.description} is running."
        if self.successful:
            return f"{self.description} succeeded."
        return self.reason or f"{self.description} {self.status}."

    def as_result(self) -> JobResult:
        "The JobResult matching the state of the workflow"
        if not self.finished:
            return JobResult.pending(self.message)
        if self.successful:
            return JobResult(JobState.SUCCEEDED, self.message)
        return JobResult(JobState.FAILED, self.message)


class Job(abc.ABC):
    """Handle on an asynchronous remote operation."""

    @property
    @abc.abstractmethod
    def id(self) -> str:
        "Opaque job identifier"

    @abc.abstractmethod
    def check(self) -> JobResult:
        "Returns the current state of the job"


class WorkflowJob(Job):
    """Job handle on a platform workflow, refreshed on every check."""

    def __init__(self, gateway: 'PantheonGateway', site_id: str, record: WorkflowRecord):
        self.__gateway = gateway
        self.__site_id = site_id
        self.__record = record

    @property
    def id(self) -> str:
        return self.__record.id

    def check(self) -> JobResult:
        self.__record = self.__gateway.get_workflow(self.__site_id, self.__record.id)
        return self.__record.as_result()


class Gateway(abc.ABC):
    """Operations of the hosting platform used by the hotfix workflows."""

    @abc.abstractmethod
    def get_site(self, name: str) -> Site:
        "Returns the site named name"

    @abc.abstractmethod
    def get_environment(self, site: Site, env_id: str) -> Environment:
        "Returns the fully resolved environment env_id of site"

    @abc.abstractmethod
    def list_environments(self, site: Site) -> Dict[str, Environment]:
        "Returns every environment of site with minimal detail"

    @abc.abstractmethod
    def get_connection_info(self, site: Site, env_id: str) -> dict:
        "Returns the connection info of an environment (at least git_url)"

    @abc.abstractmethod
    def list_branches(self, site: Site) -> List[str]:
        "Returns the names of the branches of the site repository"

    @abc.abstractmethod
    def create_environment(self, site: Site, name: str, source_env_id: str) -> Job:
        "Creates the multidev name from source_env_id"

    @abc.abstractmethod
    def create_backup(self, site: Site, env_id: str, element: Optional[str] = None,
                      keep_for: int = 365) -> Job:
        "Creates a backup of element (all elements when None)"

    @abc.abstractmethod
    def change_connection_mode(self, site: Site, env_id: str, mode: str) -> Union[Job, str]:
        "Changes the connection mode; returns a message when nothing has to change"

    @abc.abstractmethod
    def clear_cache(self, site: Site, env_id: str) -> Job:
        "Clears the caches of the environment"

    @abc.abstractmethod
    def list_workflows(self, site: Site) -> List[WorkflowRecord]:
        "Returns the workflows of site, most recent first"


class PantheonGateway(Gateway):
    """
    Gateway over the Pantheon REST API.

    Authorizes lazily with a machine token the first time a request is
    made. Use it as a context manager to close the HTTP client.

    Examples:
        with PantheonGateway(settings.api_url, settings.machine_token) as gateway:
            site = gateway.get_site('my-site')
    """

    def __init__(self, api_url: str, machine_token: Optional[str],
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 30.0):
        self.__machine_token = machine_token
        self.__session: Optional[str] = None
        self.__client = httpx.Client(
            base_url=api_url.rstrip('/'),
            transport=transport,
            timeout=timeout,
            headers={'Content-Type': 'application/json', 'User-Agent': 'terminus-hotfix'})

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self.__client.close()

    def __authorize(self):
        if not self.__machine_token:
            raise GatewayError(
                'No machine token configured. Set TERMINUS_MACHINE_TOKEN '
                'or machine_token in the configuration file.')
        data = self.__call('POST', '/authorize/machine-token', authorize=False, json={
            'machine_token': self.__machine_token,
            'client': 'terminus',
        })
        self.__session = data['session']

    def __call(self, method: str, path: str, authorize: bool = True, **kwargs):
        headers = {}
        if authorize:
            if self.__session is None:
                self.__authorize()
            headers['Authorization'] = f"Bearer {self.__session}"
        try:
            response = self.__client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as err:
            raise GatewayError(
                f"{method} {path} failed with HTTP {err.response.status_code}: "
                f"{err.response.text}",
                {'status': err.response.status_code}) from err
        except httpx.HTTPError as err:
            raise GatewayError(f"{method} {path} failed: {err}") from err
        return response.json()

    def __start_workflow(self, site: Site, env_id: Optional[str], workflow_type: str,
                         params: dict) -> WorkflowJob:
        path = f"/sites/{site.id}/workflows"
        if env_id is not None:
            path = f"/sites/{site.id}/environments/{env_id}/workflows"
        data = self.__call('POST', path, json={'type': workflow_type, 'params': params})
        return WorkflowJob(self, site.id, WorkflowRecord.from_api(data))

    def __environments(self, site: Site) -> dict:
        return self.__call('GET', f"/sites/{site.id}/environments")

    def get_site(self, name: str) -> Site:
        site_id = self.__call('GET', f"/site-names/{name}")['id']
        return Site.from_api(self.__call('GET', f"/sites/{site_id}", params={'site_state': 'true'}))

    def get_environment(self, site: Site, env_id: str) -> Environment:
        environments = self.__environments(site)
        if env_id not in environments:
            raise GatewayError(
                f"Could not find an environment identified by {env_id} on {site.name}.")
        return Environment.from_api(site.name, env_id, environments[env_id])

    def list_environments(self, site: Site) -> Dict[str, Environment]:
        return {
            env_id: Environment.from_api(site.name, env_id, data, resolved=False)
            for env_id, data in self.__environments(site).items()
        }

    def get_connection_info(self, site: Site, env_id: str) -> dict:
        host = f"codeserver.dev.{site.id}"
        return {
            'git_command': f"git clone ssh://{host}@{host}.drush.in:2222/~/repository.git {site.name}",
            'git_url': f"ssh://{host}@{host}.drush.in:2222/~/repository.git",
            'git_host': f"{host}.drush.in",
            'git_port': 2222,
            'git_username': host,
        }

    def list_branches(self, site: Site) -> List[str]:
        data = self.__call('GET', f"/sites/{site.id}/code-tips")
        if isinstance(data, dict):
            return list(data.keys())
        return [branch['id'] for branch in data]

    def create_environment(self, site: Site, name: str, source_env_id: str) -> Job:
        return self.__start_workflow(site, None, 'create_cloud_development_environment', {
            'environment_id': name,
            'deploy': {
                'clone_database': {'from_environment': source_env_id},
                'clone_files': {'from_environment': source_env_id},
                'annotation': f"Create the {name} environment.",
            },
        })

    def create_backup(self, site: Site, env_id: str, element: Optional[str] = None,
                      keep_for: int = 365) -> Job:
        params = {'entry_type': 'backup', 'ttl': keep_for * 86400}
        for elt in ('code', 'database', 'files'):
            params[elt] = element is None or element == elt
        return self.__start_workflow(site, env_id, 'do_export', params)

    def change_connection_mode(self, site: Site, env_id: str, mode: str) -> Union[Job, str]:
        data = self.__environments(site).get(env_id, {})
        current = 'sftp' if as_bool(data.get('on_server_development')) else 'git'
        if current == mode:
            return f"The connection mode is already set to {mode}."
        workflow_type = 'enable_git_mode' if mode == 'git' else 'enable_on_server_development'
        return self.__start_workflow(site, env_id, workflow_type, {})

    def clear_cache(self, site: Site, env_id: str) -> Job:
        return self.__start_workflow(site, env_id, 'clear_cache', {'framework_cache': True})

    def list_workflows(self, site: Site) -> List[WorkflowRecord]:
        data = self.__call('GET', f"/sites/{site.id}/workflows", params={'paged': 'false'})
        records = [WorkflowRecord.from_api(item) for item in data]
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def get_workflow(self, site_id: str, workflow_id: str) -> WorkflowRecord:
        "Returns the current state of a single workflow"
        return WorkflowRecord.from_api(
            self.__call('GET', f"/sites/{site_id}/workflows/{workflow_id}"))
