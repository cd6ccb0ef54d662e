from __future__ import annotations

import re
from datetime import timedelta

from app.domain.exceptions import ConfigError


_LIFETIME_RE = re.compile(r"^(\d+)([dhms]?)$")

_UNIT_SECONDS = {
    "d": 86400,
    "h": 3600,
    "m": 60,
    "s": 1,
    "": 1,
}


def parse_token_lifetime(value: str | int | None) -> timedelta:
    """Parse `7d`, `24h`, `60m`, `30s` or a bare number of seconds."""
    if isinstance(value, int):
        if value < 0:
            raise ConfigError("Token lifetime cannot be negative.")
        return timedelta(seconds=value)
    if value is None:
        raise ConfigError("Token lifetime is required.")

    match = _LIFETIME_RE.match(value.strip().lower())
    if match is None:
        raise ConfigError(
            f"Invalid token lifetime {value!r}; expected number + d/h/m/s (e.g. 7d, 24h, 60m)."
        )
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])
