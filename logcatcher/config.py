"""
Configuration for logcatcher.

Every setting has a default in DEFAULT_CONFIG and may be overridden by an
environment variable (see ENV_VARS). A .env file in the project root is
loaded on import, so local overrides do not need to be exported.
"""

import os
import shlex
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file (in parent directory)
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
load_dotenv(env_path)


DEFAULT_CONFIG = {
    'logcat_command': 'logcat',
    'log_dir': os.path.expanduser('~/.logcatcher/logs'),
    'log_level': 'VERBOSE',
    'debug_trace': False,
    'worker_count': 2,
    'poll_interval': 0.25,       # seconds between stop checks while a source is idle
    'terminate_timeout': 2.0,    # grace period before SIGKILL
    'clear_on_start': False,
    'self_only': False,
}

ENV_VARS = {
    'logcat_command': 'LOGCAT_COMMAND',
    'log_dir': 'LOGCATCHER_LOG_DIR',
    'log_level': 'LOGCATCHER_LOG_LEVEL',
    'debug_trace': 'LOGCATCHER_DEBUG',
    'worker_count': 'LOGCATCHER_WORKERS',
    'poll_interval': 'LOGCATCHER_POLL_INTERVAL',
    'terminate_timeout': 'LOGCATCHER_TERMINATE_TIMEOUT',
    'clear_on_start': 'LOGCATCHER_CLEAR_ON_START',
    'self_only': 'LOGCATCHER_SELF_ONLY',
}

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def get_config_value(key: str, default: Any = None) -> Any:
    """
    Look up a configuration value.

    Environment variable wins over DEFAULT_CONFIG, which wins over the
    explicit default.

    Args:
        key: Configuration key (see DEFAULT_CONFIG)
        default: Returned when the key is neither in the environment nor
            in DEFAULT_CONFIG

    Returns:
        Raw value (env values are strings)
    """
    env_var = ENV_VARS.get(key)
    if env_var and env_var in os.environ:
        return os.environ[env_var]
    if key in DEFAULT_CONFIG:
        return DEFAULT_CONFIG[key]
    return default


def _get_bool(key: str) -> bool:
    value = get_config_value(key)
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _get_number(key: str, cast):
    value = get_config_value(key)
    try:
        return cast(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIG[key]


def get_logcat_command() -> list[str]:
    """Base Line Source command, split like a shell would (LOGCAT_COMMAND)."""
    return shlex.split(str(get_config_value('logcat_command')))


def get_log_dir() -> str:
    """Directory for the optional trace log file."""
    return os.path.expanduser(str(get_config_value('log_dir')))


def get_log_level() -> str:
    return str(get_config_value('log_level')).strip().upper()


def get_debug_trace() -> bool:
    """Whether the capture engine emits its diagnostic trace."""
    return _get_bool('debug_trace')


def get_worker_count() -> int:
    return max(2, _get_number('worker_count', int))


def get_poll_interval() -> float:
    return _get_number('poll_interval', float)


def get_terminate_timeout() -> float:
    return _get_number('terminate_timeout', float)


def get_clear_on_start() -> bool:
    return _get_bool('clear_on_start')


def get_self_only() -> bool:
    return _get_bool('self_only')

