"""Best-effort checks for the OpenAPI ``format`` keyword.

Formats are advisory in OpenAPI, so a failed check is reported by the
schema validator as a ``TypeMismatch`` rather than a distinct violation
kind, and formats this module does not know are accepted silently.

String formats: ``email``, ``date-time``, ``date``, ``uuid``, ``uri``,
``ipv4``, ``ipv6``, ``hostname``, ``byte``.  Numeric formats: ``int32``,
``int64``.
"""

from __future__ import annotations

import datetime
import ipaddress
import re
from decimal import Decimal
from typing import Any, Callable, Optional

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE_TIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)
_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_URI = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:[^\s]+$")
_HOSTNAME = re.compile(
    r"^(?=.{1,253}$)[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?)*$"
)
_BASE64 = re.compile(
    r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$"
)

_INT32 = (-(2**31), 2**31 - 1)
_INT64 = (-(2**63), 2**63 - 1)


def _valid_date(year: str, month: str, day: str) -> bool:
    try:
        datetime.date(int(year), int(month), int(day))
    except ValueError:
        return False
    return True


def _is_date(value: str) -> bool:
    match = _DATE.match(value)
    return bool(match) and _valid_date(*match.groups())


def _is_date_time(value: str) -> bool:
    match = _DATE_TIME.match(value)
    if not match:
        return False
    year, month, day, hour, minute, second = match.groups()[:6]
    # second 60 is a leap second
    return (
        _valid_date(year, month, day)
        and int(hour) < 24
        and int(minute) < 60
        and int(second) <= 60
    )


def _is_ip(version: int) -> Callable[[str], bool]:
    def check(value: str) -> bool:
        try:
            address = ipaddress.ip_address(value)
        except ValueError:
            return False
        return address.version == version

    return check


_STRING_FORMATS: dict[str, Callable[[str], bool]] = {
    "email": lambda v: bool(_EMAIL.match(v)),
    "date": _is_date,
    "date-time": _is_date_time,
    "uuid": lambda v: bool(_UUID.match(v)),
    "uri": lambda v: bool(_URI.match(v)),
    "ipv4": _is_ip(4),
    "ipv6": _is_ip(6),
    "hostname": lambda v: bool(_HOSTNAME.match(v)),
    "byte": lambda v: bool(_BASE64.match(v)),
}

_INTEGER_FORMATS: dict[str, tuple[int, int]] = {
    "int32": _INT32,
    "int64": _INT64,
}


def check_format(fmt: str, value: Any) -> Optional[str]:
    """Check *value* against the named format.

    Args:
        fmt: The schema's ``format`` string.
        value: A value that already passed the schema's type check.

    Returns:
        A human-readable failure description, or ``None`` when the value
        conforms or the format is unknown.
    """
    if isinstance(value, str):
        check = _STRING_FORMATS.get(fmt)
        if check is not None and not check(value):
            return f"invalid {fmt} format: {value!r}"
        return None

    bounds = _INTEGER_FORMATS.get(fmt)
    is_number = isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)
    if bounds is not None and is_number:
        low, high = bounds
        if not low <= value <= high:
            return f"value {value} does not fit in {fmt}"
    return None
