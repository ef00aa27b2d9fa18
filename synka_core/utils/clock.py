# =============================================================================
# synka_core/utils/clock.py
# Time helpers shared by the stores and the interaction tracker
# =============================================================================

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Callable

# Anything returning an aware "now"; tests inject a controllable one.
Clock = Callable[[], datetime]

_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Milliseconds since the epoch, the timestamp format used in stored entries."""
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_iso(moment: datetime) -> str:
    """ISO-8601 with a UTC 'Z' suffix, as the remote service stores timestamps."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """
    Parse ISO-8601 strings, accepting the 'Z' suffix. Naive values are taken as UTC.

    Fractional seconds of any length (".12345+00:00" from PostgREST) are cut
    or padded to six digits.
    """
    value = value.replace("Z", "+00:00")
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
