"""The config module provides the Settings and HotfixOptions classes.

Settings are read once from an INI file (section ``[terminus-hotfix]``):

    [terminus-hotfix]
    api_url = https://terminus.pantheon.io/api
    machine_token = ...
    temp_dir = /var/tmp
    job_timeout = 3600
    deploy_timeout = 60

The file is looked up in $TERMINUS_HOTFIX_CONFIG, then in
~/.terminus-hotfix/config. A missing file means defaults everywhere.
"""

import os
import tempfile
from configparser import ConfigParser
from dataclasses import dataclass, fields
from typing import Optional

from terminus_hotfix.errors import InvalidOptionError

SECTION = 'terminus-hotfix'
CONFIG_ENV_VAR = 'TERMINUS_HOTFIX_CONFIG'
TOKEN_ENV_VAR = 'TERMINUS_MACHINE_TOKEN'
DEFAULT_CONFIG_FILE = os.path.join('~', '.terminus-hotfix', 'config')
SCRATCH_DIR_NAME = 'terminus-hotfix-plugin-temp'

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


class Settings:
    """Reads the terminus-hotfix configuration file.

    Values not present in the file keep their defaults. The machine token
    from the environment always wins over the file.
    """
    api_url: str = 'https://terminus.pantheon.io/api'
    machine_token: Optional[str] = None
    temp_dir: str = ''
    job_poll_interval: float = 3.0
    job_poll_max_interval: float = 30.0
    job_poll_backoff: float = 1.5
    job_timeout: float = 3600.0
    deploy_poll_interval: float = 5.0
    deploy_timeout: float = 60.0

    __floats = (
        'job_poll_interval', 'job_poll_max_interval', 'job_poll_backoff',
        'job_timeout', 'deploy_poll_interval', 'deploy_timeout')

    def __init__(self, config_file: Optional[str] = None, **kwargs):
        self.__file = config_file or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
        self.__file = os.path.expanduser(self.__file)
        self.temp_dir = tempfile.gettempdir()
        if os.path.exists(self.__file):
            self.read()
        for key, value in kwargs.items():
            if not hasattr(Settings, key):
                raise InvalidOptionError(f"Unknown setting {key}")
            setattr(self, key, value)
        self.machine_token = os.environ.get(TOKEN_ENV_VAR) or self.machine_token

    @property
    def file(self):
        "The configuration file path"
        return self.__file

    def read(self):
        "Reads the [terminus-hotfix] section of the configuration file"
        config = ConfigParser()
        config.read(self.__file, encoding='utf-8')
        if not config.has_section(SECTION):
            return
        section = config[SECTION]
        self.api_url = section.get('api_url', self.api_url).rstrip('/')
        self.machine_token = section.get('machine_token', self.machine_token)
        self.temp_dir = section.get('temp_dir', self.temp_dir)
        for key in self.__floats:
            try:
                setattr(self, key, section.getfloat(key, getattr(self, key)))
            except ValueError as err:
                raise InvalidOptionError(
                    f"Setting {key} in {self.__file} must be a number") from err

    @property
    def scratch_dir(self):
        "Root of the per-site working copies"
        return os.path.join(self.temp_dir, SCRATCH_DIR_NAME)


def _to_bool(name, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE + _FALSE:
        return value.strip().lower() in _TRUE
    raise InvalidOptionError(f"Option {name} expects a boolean, got {value!r}")


@dataclass(frozen=True)
class HotfixOptions:
    """The effective option set of a workflow invocation."""
    cleanup_temp_dir: bool = True
    create_backup: bool = False
    cc: bool = False
    merge_strategy: str = 'theirs'
    message: str = 'Hotfix deployment'

    @classmethod
    def from_mapping(cls, options: Optional[dict] = None) -> 'HotfixOptions':
        """
        Build the option set from a mapping of explicit values.

        Names may be dashed ('cleanup-temp-dir') or underscored. Explicit
        values override the defaults; None values are ignored.

        Raises:
            InvalidOptionError: unknown option name or wrong value type
        """
        known = {field.name: field for field in fields(cls)}
        values = {}
        for name, value in (options or {}).items():
            key = name.replace('-', '_')
            if key not in known:
                raise InvalidOptionError(f"Unknown option {name}")
            if value is None:
                continue
            if known[key].type is bool or known[key].type == 'bool':
                value = _to_bool(name, value)
            elif not isinstance(value, str):
                raise InvalidOptionError(f"Option {name} expects a string, got {value!r}")
            values[key] = value
        return cls(**values)
