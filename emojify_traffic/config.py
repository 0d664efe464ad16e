"""
Emojify Traffic: Configuration.

Defines environment-specific configuration classes for the load
generator, plus :class:`WorkflowSettings`, the immutable value that is
actually handed to a :class:`~emojify_traffic.workflow.Workflow`.
Stages never read the environment themselves; everything they need is
passed in through the settings object.

The ``get_config`` factory selects a class based on the ``TRAFFIC_ENV``
environment variable (or an explicit key).  Individual values can be
overridden with the variables listed in :data:`ENVIRONMENT_VARIABLES`,
which ``env_help`` renders for ``--env-help``.

Key Concepts Demonstrated:
- Class-based configuration with inheritance for DRY defaults
- Environment-variable overrides for 12-factor deployability
- Go-style duration strings (``"500ms"``, ``"60s"``, ``"30m"``)
- Validation at construction time so bad settings fail before any traffic
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .endpoints import PICTURE_PATHS, STATIC_ASSET_PATHS, join_url
from .errors import ConfigurationError


class EnvironmentVariable(NamedTuple):
    """One documented configuration variable."""

    name: str
    default: str
    help: str
    required: bool = False


ENVIRONMENT_VARIABLES: tuple[EnvironmentVariable, ...] = (
    EnvironmentVariable("BASE_URI", "", "base URI for requests", required=True),
    EnvironmentVariable("TIMEOUT", "60s", "timeout for each scenario"),
    EnvironmentVariable("DURATION", "30m", "test duration"),
    EnvironmentVariable("USERS", "5", "concurrent users"),
    EnvironmentVariable("SHOW_PROGRESS", "true", "show graphical progress"),
    EnvironmentVariable("REQUEST_TIMEOUT", "10s", "timeout for each HTTP request"),
    EnvironmentVariable("SUBMIT_DELAY", "1s", "pause between page load and job submission"),
    EnvironmentVariable("POLL_INTERVAL", "1s", "pause between job status queries"),
    EnvironmentVariable("POLL_MAX_ATTEMPTS", "100", "job status queries before giving up"),
    EnvironmentVariable("ERROR_LOG", "error.txt", "file receiving one line per failed iteration"),
)

_DEFAULTS = {variable.name: variable.default for variable in ENVIRONMENT_VARIABLES}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: str | float | int) -> float:
    """
    Convert a duration to seconds.

    Args:
        value: A number of seconds, or a string such as ``"250ms"``,
            ``"60s"``, ``"30m"`` or ``"1h"``.  A bare number in a string
            is taken as seconds.

    Returns:
        The duration in seconds.

    Raises:
        ConfigurationError: If the string is not a recognised duration.
    """
    if isinstance(value, (int, float)):
        return float(value)

    match = _DURATION_RE.match(value)
    if match is None:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit]


def parse_bool(value: str | bool) -> bool:
    """Interpret the usual truthy spellings of an environment flag."""
    if isinstance(value, bool):
        return value
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_count(value: str | int) -> int:
    """Parse a whole number such as ``USERS`` or ``POLL_MAX_ATTEMPTS``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid count: {value!r}")
    return int(value)


def _parse(name: str, value: Any, parser: Callable[[Any], Any]) -> Any:
    """Apply *parser*, naming the offending variable on failure."""
    try:
        return parser(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name}: {exc}") from exc


def _env(name: str) -> str:
    return os.environ.get(name, _DEFAULTS[name])


class Config:
    """
    Base (shared) configuration for the load generator.

    Values are kept as the raw environment strings; subclasses may use
    plain numbers instead.  Nothing is parsed until :class:`HarnessSettings`
    or :class:`WorkflowSettings` is built, so a bad value surfaces as a
    :class:`ConfigurationError` rather than an import failure.
    """

    BASE_URI: str = _env("BASE_URI")

    # Harness values, see HarnessSettings.
    TIMEOUT: str | float = _env("TIMEOUT")
    DURATION: str | float = _env("DURATION")
    USERS: str | int = _env("USERS")
    SHOW_PROGRESS: str | bool = _env("SHOW_PROGRESS")

    REQUEST_TIMEOUT: str | float = _env("REQUEST_TIMEOUT")
    SUBMIT_DELAY: str | float = _env("SUBMIT_DELAY")
    POLL_INTERVAL: str | float = _env("POLL_INTERVAL")
    POLL_MAX_ATTEMPTS: str | int = _env("POLL_MAX_ATTEMPTS")

    ERROR_LOG: str = _env("ERROR_LOG")


class DevelopmentConfig(Config):
    """Local runs against a service started on this machine."""

    BASE_URI: str = os.environ.get("BASE_URI", "http://localhost:8080")
    SHOW_PROGRESS: bool = True


class TestingConfig(Config):
    """
    Test-suite overrides.

    Points at a non-routable host so unit tests never leak real traffic,
    and removes every delay so polling tests finish instantly.
    """

    BASE_URI: str = os.environ.get("TEST_BASE_URI", "http://emojify.test")
    REQUEST_TIMEOUT: float = 1.0
    SUBMIT_DELAY: float = 0.0
    POLL_INTERVAL: float = 0.0
    POLL_MAX_ATTEMPTS: int = 5
    SHOW_PROGRESS: bool = False


class ProductionConfig(Config):
    """Values come entirely from the environment set by the CI job."""

    SHOW_PROGRESS: bool = False


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": ProductionConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for the given environment.

    Args:
        env: One of ``"development"``, ``"testing"`` or ``"production"``.
            When *None*, ``TRAFFIC_ENV`` is consulted, falling back to
            ``"production"`` if unset.

    Returns:
        The matching ``Config`` subclass, or ``ProductionConfig`` if the
        key is unrecognised.
    """
    if env is None:
        env = os.environ.get("TRAFFIC_ENV", "production")
    return config.get(env, config["default"])


def env_help() -> str:
    """Render the configuration variables as an aligned table."""
    width = max(len(variable.name) for variable in ENVIRONMENT_VARIABLES)
    lines = []
    for variable in ENVIRONMENT_VARIABLES:
        default = "(required)" if variable.required else f"default: {variable.default!r}"
        lines.append(f"  {variable.name:<{width}}  {variable.help} [{default}]")
    return "\n".join(lines)


@dataclass(frozen=True)
class WorkflowSettings:
    """
    Everything one workflow iteration needs, validated up front.

    Attributes:
        base_uri: Root URL of the Emojify service, without trailing slash.
        request_timeout: Seconds allowed for each individual HTTP call.
        submit_delay: Seconds to pause between the page load and the
            job submission.
        poll_interval: Seconds between consecutive status queries.
        poll_max_attempts: Status queries made before declaring the job
            exhausted.
        asset_paths: Paths fetched concurrently by the page-load stage.
        picture_paths: Candidate pictures for the submission stage.
    """

    base_uri: str
    request_timeout: float = 10.0
    submit_delay: float = 1.0
    poll_interval: float = 1.0
    poll_max_attempts: int = 100
    asset_paths: tuple[str, ...] = field(default=STATIC_ASSET_PATHS)
    picture_paths: tuple[str, ...] = field(default=PICTURE_PATHS)

    def __post_init__(self) -> None:
        base_uri = (self.base_uri or "").strip().rstrip("/")
        if not base_uri:
            raise ConfigurationError("BASE_URI must be set to the service root URL")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.submit_delay < 0 or self.poll_interval < 0:
            raise ConfigurationError("delays must not be negative")
        if self.poll_max_attempts < 1:
            raise ConfigurationError("poll_max_attempts must be at least 1")
        if not self.picture_paths:
            raise ConfigurationError("picture_paths must not be empty")
        # Frozen dataclass: normalise through object.__setattr__.
        object.__setattr__(self, "base_uri", base_uri)
        object.__setattr__(self, "asset_paths", tuple(self.asset_paths))
        object.__setattr__(self, "picture_paths", tuple(self.picture_paths))

    @classmethod
    def from_config(cls, config_class: type[Config], **overrides: Any) -> WorkflowSettings:
        """
        Build settings from a ``Config`` class.

        Args:
            config_class: Usually the result of :func:`get_config`.
            **overrides: Field values that win over the config class,
                e.g. a ``base_uri`` taken from Locust's ``--host``.
                ``None`` values are ignored.
        """
        values: dict[str, Any] = {
            "base_uri": config_class.BASE_URI,
            "request_timeout": _parse(
                "REQUEST_TIMEOUT", config_class.REQUEST_TIMEOUT, parse_duration
            ),
            "submit_delay": _parse("SUBMIT_DELAY", config_class.SUBMIT_DELAY, parse_duration),
            "poll_interval": _parse("POLL_INTERVAL", config_class.POLL_INTERVAL, parse_duration),
            "poll_max_attempts": _parse(
                "POLL_MAX_ATTEMPTS", config_class.POLL_MAX_ATTEMPTS, parse_count
            ),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def url(self, path: str) -> str:
        """Absolute URL of *path* on the configured service."""
        return join_url(self.base_uri, path)


@dataclass(frozen=True)
class HarnessSettings:
    """
    Values that shape a Locust run rather than a single iteration.

    Attributes:
        timeout: Wall-clock budget for one iteration in seconds; 0 disables it.
        duration: Total run time in seconds; 0 means run until stopped.
        users: Concurrent simulated users.
        show_progress: Print periodic stats while a headless run is going.
    """

    timeout: float = 60.0
    duration: float = 1800.0
    users: int = 5
    show_progress: bool = True

    def __post_init__(self) -> None:
        if self.timeout < 0 or self.duration < 0:
            raise ConfigurationError("TIMEOUT and DURATION must not be negative")
        if self.users < 1:
            raise ConfigurationError("USERS must be at least 1")

    @classmethod
    def from_config(cls, config_class: type[Config]) -> HarnessSettings:
        return cls(
            timeout=_parse("TIMEOUT", config_class.TIMEOUT, parse_duration),
            duration=_parse("DURATION", config_class.DURATION, parse_duration),
            users=_parse("USERS", config_class.USERS, parse_count),
            show_progress=_parse("SHOW_PROGRESS", config_class.SHOW_PROGRESS, parse_bool),
        )

    @property
    def run_time(self) -> str | None:
        """``DURATION`` in the form Locust's ``--run-time`` accepts."""
        return f"{round(self.duration)}s" if self.duration else None
