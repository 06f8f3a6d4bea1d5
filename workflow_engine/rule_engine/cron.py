"""Minimal 5-field cron evaluation.

Format: ``minute hour day-of-month month day-of-week``. Each field accepts
``*``, a number, a range ``m-n``, a step ``*/s``, ``m-n/s`` or ``v/s``,
and comma lists of those. Day of week counts from Sunday = 0.
"""

from datetime import datetime, timedelta

CRON_FIELD_COUNT = 5
# One day at minute granularity
MAX_SEARCH_MINUTES = 1440
FALLBACK_DELAY = timedelta(hours=1)


def _to_int(text: str) -> int | None:
    text = text.strip()
    # plain ASCII digits only: no sign, underscore or other scripts
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def _field_values(dt: datetime) -> tuple[int, int, int, int, int]:
    # isoweekday: Monday=1 .. Sunday=7, cron wants Sunday=0
    return dt.minute, dt.hour, dt.day, dt.month, dt.isoweekday() % 7


def _in_range(range_part: str, value: int) -> tuple[int, int] | None:
    start_text, _, end_text = range_part.partition("-")
    start, end = _to_int(start_text), _to_int(end_text)
    if start is None or end is None:
        return None
    if start <= value <= end:
        return start, end
    return None


def field_matches(pattern: str, value: int) -> bool:
    """Check a single cron field against a calendar value."""
    if pattern == "*":
        return True

    if "," in pattern:
        return any(field_matches(part.strip(), value) for part in pattern.split(","))

    if "/" in pattern:
        range_part, _, step_text = pattern.partition("/")
        step = _to_int(step_text)
        if step is None or step <= 0:
            return False

        if range_part == "*":
            return value % step == 0

        if "-" in range_part:
            bounds = _in_range(range_part, value)
            if bounds is None:
                return False
            return (value - bounds[0]) % step == 0

        return value % step == 0

    if "-" in pattern:
        return _in_range(pattern, value) is not None

    return _to_int(pattern) == value


def cron_matches(expression: str, dt: datetime) -> bool:
    """Return True if ``dt`` falls on a minute selected by ``expression``.

    Expressions without exactly five fields never match.
    """
    parts = (expression or "").split()
    if len(parts) != CRON_FIELD_COUNT:
        return False

    return all(
        field_matches(pattern, value)
        for pattern, value in zip(parts, _field_values(dt))
    )


def next_cron_run(expression: str, after: datetime) -> datetime:
    """Compute the first matching minute strictly after ``after``.

    The search covers the next 24 hours minute by minute. When nothing
    matches in that window (an invalid or very sparse expression) the
    result is ``after`` plus one hour, so schedules always move forward.
    """
    candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)

    for _ in range(MAX_SEARCH_MINUTES):
        if cron_matches(expression, candidate):
            return candidate
        candidate += timedelta(minutes=1)

    return after + FALLBACK_DELAY
