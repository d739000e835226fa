"""
Workflow Context

Resolves, once per invocation, everything a hotfix workflow needs to know
about the remote site: the site itself, the target environment, the dev,
test and live environments (fully resolved), every other environment
(minimal detail), the git URL and the existing remote branches.

Resolution is read-only: it never creates, deletes or pushes anything.
"""

import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union

from terminus_hotfix.config import HotfixOptions, Settings
from terminus_hotfix.errors import FrozenSiteError, GatewayError, InvalidNameError
from terminus_hotfix.gateway import Environment, Gateway, Site

MAX_MULTIDEV_LENGTH = 11
DEFAULT_ENVIRONMENTS = ('dev', 'test', 'live')


def parse_site_env(site_env: str) -> Tuple[str, str]:
    """
    Split a '<site>.<env>' identifier.

    Raises:
        GatewayError: if site_env is not of the form <site>.<env>
    """
    parts = (site_env or '').split('.')
    if len(parts) != 2 or not all(parts):
        raise GatewayError(
            f"The environment argument must be given as <site_name>.<environment>, got {site_env!r}")
    return parts[0], parts[1]


def validate_multidev_name(multidev: str) -> None:
    """
    Check the multidev name against the platform naming constraint.

    Raises:
        InvalidNameError: if the name is empty or longer than 11 characters
    """
    if not multidev:
        raise InvalidNameError('A multidev environment name is required')
    if len(multidev) > MAX_MULTIDEV_LENGTH:
        raise InvalidNameError(
            f"The provided multidev environment name {multidev} is longer than "
            f"the allowed {MAX_MULTIDEV_LENGTH} characters",
            {'multidev': multidev})


@dataclass(frozen=True)
class WorkflowContext:
    """State shared by the steps of a single workflow invocation."""
    site: Site
    environment: Environment
    environments: Mapping[str, Environment]
    multidev: str
    options: HotfixOptions
    git_url: str
    branches: FrozenSet[str]
    temp_dir: str
    git_dir: str

    @property
    def site_env(self) -> str:
        return f"{self.site.name}.{self.environment.id}"

    def env(self, env_id: str) -> Environment:
        return self.environments[env_id]


class ContextResolver:
    """
    Builds WorkflowContext instances from the remote gateway.

    Sites and fully resolved environments are cached: resolving the same
    '<site>.<env>' twice issues a single remote query.
    """

    def __init__(self, gateway: Gateway, settings: Optional[Settings] = None):
        self.__gateway = gateway
        self.__settings = settings or Settings()
        self.__sites: Dict[str, Site] = {}
        self.__environments: Dict[Tuple[str, str], Environment] = {}

    def resolve_site(self, site_name: str) -> Site:
        """
        Returns the site named site_name.

        Raises:
            FrozenSiteError: if the site is frozen
        """
        if site_name not in self.__sites:
            site = self.__gateway.get_site(site_name)
            if site.frozen:
                raise FrozenSiteError(
                    f"The requested site {site.name} is frozen.", {'site': site.name})
            self.__sites[site_name] = site
        return self.__sites[site_name]

    def resolve_environment(self, site_env: str) -> Tuple[Site, Environment]:
        "Returns the site and the fully resolved environment of site_env"
        site_name, env_id = parse_site_env(site_env)
        site = self.resolve_site(site_name)
        key = (site.name, env_id)
        if key not in self.__environments:
            self.__environments[key] = self.__gateway.get_environment(site, env_id)
        return site, self.__environments[key]

    def resolve(self, site_env: str, multidev: str,
                options: Union[HotfixOptions, dict, None] = None) -> WorkflowContext:
        """
        Resolve the context of a workflow on site_env.

        The multidev name and the options are validated before any remote
        call is made.

        Raises:
            InvalidNameError: multidev name longer than 11 characters
            InvalidOptionError: unknown or mistyped option
            FrozenSiteError: the site is frozen
            GatewayError: the remote platform could not be queried
        """
        validate_multidev_name(multidev)
        if not isinstance(options, HotfixOptions):
            options = HotfixOptions.from_mapping(options)
        site, environment = self.resolve_environment(site_env)

        environments = {environment.id: environment}
        for env_id in DEFAULT_ENVIRONMENTS:
            environments[env_id] = self.resolve_environment(f"{site.name}.{env_id}")[1]
        for env_id, minimal in self.__gateway.list_environments(site).items():
            environments.setdefault(env_id, minimal)

        git_url = self.__gateway.get_connection_info(site, 'dev')['git_url']
        branches = frozenset(self.__gateway.list_branches(site))
        temp_dir = self.__settings.scratch_dir
        return WorkflowContext(
            site=site,
            environment=environment,
            environments=MappingProxyType(environments),
            multidev=multidev,
            options=options,
            git_url=git_url,
            branches=branches,
            temp_dir=temp_dir,
            git_dir=os.path.join(temp_dir, site.name))
