"""
Environment-driven defaults for transports and debug logging.
"""

from __future__ import annotations

import os
from enum import StrEnum
from dataclasses import dataclass

from dotenv import load_dotenv

DEBUG_LEVEL_ENV_VAR = "FETCHTRAY_DEBUG_LEVEL"
TIMEOUT_ENV_VAR = "FETCHTRAY_TIMEOUT_SECONDS"
DEFAULT_TIMEOUT_SECONDS = 30.0


class FetchTrayDebugLevel(StrEnum):
    """
    How much request/response traffic ``execute_request`` logs.
    """

    NONE = "none"
    ONLY_ERRORS = "only_errors"
    EVERYTHING = "everything"


@dataclass(frozen=True)
class TrayConfig:
    """
    Resolved package configuration.

    Parameters
    ----------
    debug_level : FetchTrayDebugLevel
        Default debug level when none is passed explicitly.
    timeout_seconds : float
        Timeout of the httpx client created by ``HttpxTransport``.
    """

    debug_level: FetchTrayDebugLevel = FetchTrayDebugLevel.NONE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def _parse_debug_level(value: str | None) -> FetchTrayDebugLevel:
    if not value:
        return FetchTrayDebugLevel.NONE
    try:
        return FetchTrayDebugLevel(value.strip().lower())
    except ValueError as error:
        allowed = ", ".join(level.value for level in FetchTrayDebugLevel)
        raise ValueError(
            f"{DEBUG_LEVEL_ENV_VAR} must be one of {allowed}, got '{value}'"
        ) from error


def _parse_timeout(value: str | None) -> float:
    if not value:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(value)
    except ValueError as error:
        raise ValueError(f"{TIMEOUT_ENV_VAR} must be a number, got '{value}'") from error
    if timeout <= 0:
        raise ValueError(f"{TIMEOUT_ENV_VAR} must be positive, got '{value}'")
    return timeout


def resolve_config() -> TrayConfig:
    """
    Resolve configuration from the environment and a ``.env`` file.

    Returns
    -------
    TrayConfig
        Configuration built from ``FETCHTRAY_*`` variables. Variables already
        set in the process environment take precedence over ``.env``.

    Raises
    ------
    ValueError
        If a variable holds an unsupported value.
    """
    load_dotenv()
    return TrayConfig(
        debug_level=_parse_debug_level(os.getenv(DEBUG_LEVEL_ENV_VAR)),
        timeout_seconds=_parse_timeout(os.getenv(TIMEOUT_ENV_VAR)),
    )
