"""
Date/time literal parsing for partition values

Accepts partial literals (year only up to full seconds, optional UTC offset)
and ISO-8601 periods such as P1D or P1M.
"""

import re
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from dbexport.errors import ParseError


INSTANT_PATTERN = re.compile(
    r"""
    ^(?P<year>\d{4})
    (?:-(?P<month>\d{2})
        (?:-(?P<day>\d{2})
            (?:T(?P<hour>\d{2})
                (?::(?P<minute>\d{2})
                    (?::(?P<second>\d{2}))?
                )?
            )?
        )?
    )?
    (?P<offset>Z|[+-]\d{2}(?::?\d{2}(?::?\d{2})?)?)?$
    """,
    re.IGNORECASE | re.VERBOSE,
)

PERIOD_PATTERN = re.compile(
    r"^(?P<sign>[+-]?)P(?:(?P<years>[+-]?\d+)Y)?(?:(?P<months>[+-]?\d+)M)?"
    r"(?:(?P<weeks>[+-]?\d+)W)?(?:(?P<days>[+-]?\d+)D)?$",
    re.IGNORECASE,
)

DEFAULT_PARTITION_PERIOD = relativedelta(days=1)

# Java-style offset ids are limited to +/-18:00
MAX_OFFSET = timedelta(hours=18)


def _parse_offset(offset: str) -> timezone:
    if offset.upper() == "Z":
        return timezone.utc

    sign = -1 if offset[0] == "-" else 1
    digits = offset[1:].replace(":", "")
    hours = int(digits[0:2])
    minutes = int(digits[2:4]) if len(digits) >= 4 else 0
    seconds = int(digits[4:6]) if len(digits) >= 6 else 0
    if minutes > 59 or seconds > 59:
        raise ValueError(f"invalid offset {offset}")

    delta = timedelta(hours=hours, minutes=minutes, seconds=seconds)
    if delta > MAX_OFFSET:
        raise ValueError(f"offset {offset} out of range")
    return timezone(sign * delta)


def parse_instant(text: str) -> datetime:
    """
    Parse a partial date/time literal into an aware UTC datetime

    Accepted forms (case-insensitive), each optionally followed by an offset
    (Z, +HH, +HH:MM, +HHMM, +HH:MM:SS):
        2027, 2027-05, 2027-05-02, 2027-05-02T23, 2027-05-02T23:15,
        2027-05-02T23:15:59

    Missing fields default to the start of the period (month and day 1,
    time 00:00:00). Without an offset the literal is taken as UTC.

    Raises:
        ParseError: if the text matches none of the accepted forms
    """
    if text is None:
        raise ParseError(text, "Could not parse empty date/time literal")

    match = INSTANT_PATTERN.match(text.strip())
    if not match:
        raise ParseError(text, f"Could not parse date/time literal '{text}'")

    fields = match.groupdict()
    try:
        tz = _parse_offset(fields["offset"]) if fields["offset"] else timezone.utc
        value = datetime(
            int(fields["year"]),
            int(fields["month"] or 1),
            int(fields["day"] or 1),
            int(fields["hour"] or 0),
            int(fields["minute"] or 0),
            int(fields["second"] or 0),
            tzinfo=tz,
        )
    except ValueError as e:
        raise ParseError(text, f"Could not parse date/time literal '{text}': {e}") from e

    return value.astimezone(timezone.utc)


def parse_period(text: str) -> relativedelta:
    """
    Parse an ISO-8601 date period (P1D, P2W, P1M, P1Y2M3D, -P1D)

    Only date-based units are supported. The result is a relativedelta so
    that months and years are added with calendar arithmetic.
    """
    if text is None:
        raise ParseError(text, "Could not parse empty period literal")

    match = PERIOD_PATTERN.match(text.strip())
    if not match or not any(match.group(unit) for unit in ("years", "months", "weeks", "days")):
        raise ParseError(text, f"Could not parse period literal '{text}'")

    sign = -1 if match.group("sign") == "-" else 1
    years, months, weeks, days = (
        int(match.group(unit) or 0) for unit in ("years", "months", "weeks", "days")
    )
    return relativedelta(
        years=sign * years,
        months=sign * months,
        days=sign * (weeks * 7 + days),
    )


def format_date(value: datetime) -> str:
    """Render the UTC calendar date of an instant as YYYY-MM-DD"""
    return value.astimezone(timezone.utc).date().isoformat()


def format_instant(value: datetime) -> str:
    """Render an instant the way it is shown in messages, e.g. 2027-07-31T00:00:00Z"""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
