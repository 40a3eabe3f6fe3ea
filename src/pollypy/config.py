"""Configuration module for pollypy sessions.

This module provides the PollyConfig class, which controls the session mode
and the policies the dispatch engine applies while replaying: expiration,
re-recording and simulated timing.

Example:
    Basic usage with defaults:

        >>> config = PollyConfig()
        >>> config.mode
        <Mode.REPLAY: 'replay'>
        >>> config.record_if_missing
        True

    Custom configuration:

        >>> config = PollyConfig(
        ...     mode="replay",
        ...     expires_in="30d",
        ...     record_if_expired=True,
        ...     record_if_missing=False,
        ... )
        >>> config.expires_in
        datetime.timedelta(days=30)

    Loading from environment:

        >>> import os
        >>> os.environ['POLLY_MODE'] = 'record'
        >>> os.environ['POLLY_EXPIRES_IN'] = '12h'
        >>> config = PollyConfig.from_env()
"""

import os
import re
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, field_validator

from pollypy.models import Mode

# Unit aliases accepted in duration strings, in milliseconds
DURATION_UNITS: dict[str, float] = {
    "ms": 1,
    "millisecond": 1,
    "milliseconds": 1,
    "s": 1000,
    "sec": 1000,
    "secs": 1000,
    "second": 1000,
    "seconds": 1000,
    "m": 60 * 1000,
    "min": 60 * 1000,
    "mins": 60 * 1000,
    "minute": 60 * 1000,
    "minutes": 60 * 1000,
    "h": 60 * 60 * 1000,
    "hr": 60 * 60 * 1000,
    "hrs": 60 * 60 * 1000,
    "hour": 60 * 60 * 1000,
    "hours": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "day": 24 * 60 * 60 * 1000,
    "days": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
    "week": 7 * 24 * 60 * 60 * 1000,
    "weeks": 7 * 24 * 60 * 60 * 1000,
    "y": 365 * 24 * 60 * 60 * 1000,
    "year": 365 * 24 * 60 * 60 * 1000,
    "years": 365 * 24 * 60 * 60 * 1000,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def parse_duration(value: str) -> timedelta:
    """Parse a human duration string such as ``"30d5h10m"`` or ``"1.5 hours"``.

    Parts may be separated by whitespace or commas. A bare number is read as
    milliseconds.

    Args:
        value: The duration string.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is empty, contains an unknown unit, or is
            too large for a timedelta.

    Example:
        >>> parse_duration("1d 2h")
        datetime.timedelta(days=1, seconds=7200)
        >>> parse_duration("250")
        datetime.timedelta(microseconds=250000)
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("Duration string cannot be empty")

    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return _milliseconds(float(text), value)

    total_ms = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        gap = text[position : match.start()]
        if gap.strip(" ,"):
            raise ValueError(f"Invalid duration: {value!r}")

        amount, unit = match.groups()
        if unit not in DURATION_UNITS:
            raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")

        total_ms += float(amount) * DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or text[position:].strip(" ,"):
        raise ValueError(f"Invalid duration: {value!r}")

    return _milliseconds(total_ms, value)


def _milliseconds(amount: float, value: str) -> timedelta:
    try:
        return timedelta(milliseconds=amount)
    except OverflowError as e:
        raise ValueError(f"Duration out of range: {value!r}") from e


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


class PollyConfig(BaseModel):
    """Configuration for a pollypy session.

    Attributes:
        mode: Session-wide default behavior. Default is "replay".
        expires_in: Age after which a recording is considered expired.
            Accepts a timedelta, integer milliseconds or a duration string
            ("30d5h"). None means recordings never expire.
        record_if_expired: Re-record expired recordings instead of replaying
            them. Only honored while the network is reachable. Default False.
        record_if_missing: Record requests that have no recording while in
            replay mode. When False a missing recording fails the request.
            Default True.
        timing: Callable receiving the recorded request and response
            timestamps (epoch milliseconds) and returning the delay, in
            milliseconds, to wait before delivering a replayed response.
            None disables simulated latency.
        match_headers: Request header names that take part in request
            identity. Case-insensitive. Default is empty.

    Note:
        This class is immutable (frozen=True). Create a new instance, or use
        ``model_copy(update=...)``, for different settings.
    """

    mode: Mode = Field(
        default=Mode.REPLAY,
        description="Session-wide default behavior",
    )
    expires_in: timedelta | None = Field(
        default=None,
        description="Age after which recordings expire (None = never)",
    )
    record_if_expired: bool = Field(
        default=False,
        description="Re-record expired recordings when online",
    )
    record_if_missing: bool = Field(
        default=True,
        description="Record requests that have no recording in replay mode",
    )
    timing: Callable[[float, float], float] | None = Field(
        default=None,
        description="Simulated replay latency in milliseconds",
    )
    match_headers: list[str] | str = Field(
        default_factory=list,
        description="Request headers included in request identity",
    )

    model_config = {"frozen": True}

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v: Any) -> Any:
        """Accept mode names case-insensitively.

        Example:
            >>> PollyConfig(mode="RECORD").mode
            <Mode.RECORD: 'record'>
        """
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("expires_in", mode="before")
    @classmethod
    def validate_expires_in(cls, v: Any) -> timedelta | None:
        """Normalize and validate the expiration duration.

        Args:
            v: None, a timedelta, milliseconds, or a duration string.

        Returns:
            A positive timedelta, or None.

        Raises:
            ValueError: If the duration is malformed or not positive.
        """
        if v is None:
            return None

        if isinstance(v, bool):
            raise ValueError("expires_in must be a duration, not a boolean")

        if isinstance(v, str):
            duration = parse_duration(v)
        elif isinstance(v, (int, float)):
            try:
                duration = timedelta(milliseconds=v)
            except OverflowError as e:
                raise ValueError("expires_in out of range") from e
        elif isinstance(v, timedelta):
            duration = v
        else:
            raise ValueError(f"expires_in must be a duration, got {type(v).__name__}")

        if duration <= timedelta(0):
            raise ValueError(f"expires_in must be positive, got {duration}")
        return duration

    @field_validator("match_headers", mode="before")
    @classmethod
    def validate_match_headers(cls, v: Any) -> list[str]:
        """Lowercase header names; accept a comma-separated string.

        Example:
            >>> PollyConfig(match_headers="Accept, X-Api-Version").match_headers
            ['accept', 'x-api-version']
        """
        if isinstance(v, str):
            v = [header.strip() for header in v.split(",") if header.strip()]

        if not isinstance(v, list):
            raise ValueError("match_headers must be a list or comma-separated string")

        return [header.lower() for header in v]

    @classmethod
    def from_env(cls, prefix: str = "POLLY_") -> "PollyConfig":
        """Create configuration from environment variables.

        Variable names are the uppercase field names with the prefix, e.g.
        ``POLLY_MODE`` or ``POLLY_RECORD_IF_MISSING``. ``timing`` cannot be
        set from the environment.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            PollyConfig populated from environment variables.

        Example:
            >>> import os
            >>> os.environ['POLLY_MODE'] = 'passthrough'
            >>> os.environ['POLLY_RECORD_IF_MISSING'] = 'false'
            >>> config = PollyConfig.from_env()
            >>> config.record_if_missing
            False
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "mode": str,
            "expires_in": str,
            "record_if_expired": bool,
            "record_if_missing": bool,
            "match_headers": list,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is None:
                continue

            if field_type is bool:
                config_dict[field_name] = _parse_bool(env_var, env_value)
            else:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PollyConfig":
        """Create configuration from a dictionary.

        Args:
            config_dict: Dictionary with configuration values.

        Returns:
            PollyConfig populated from the dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
