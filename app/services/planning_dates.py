"""Planner date synchronisation.

Keeps the start_date / end_date / duration_days triple of a plan item
consistent whenever one of the three is edited in the planner grid:

    duration_days == (end_date - start_date).days + 1,  start_date <= end_date

Pure functions, no I/O. Malformed dates are treated as absent and
malformed durations are coerced to 1; nothing here raises on user input.
Dates are returned as ISO ``YYYY-MM-DD`` strings.
"""

from datetime import date, timedelta

from app.utils.helpers import parse_date

DATE_FIELDS = ("start_date", "end_date", "duration_days")

# Longest span the calendar can hold
MAX_DURATION_DAYS = (date.max - date.min).days + 1


def _field(item, key):
    """Read a field from a dict row or a PlanItem instance."""
    if item is None:
        return None
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def _is_empty(value):
    return value is None or (isinstance(value, str) and not value.strip())


def to_iso(value):
    """Normalise any accepted date input to ``YYYY-MM-DD`` (None if invalid)."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def calculate_duration_days(start, end):
    """Inclusive day count between two dates; None if either is missing/invalid."""
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d is None or end_d is None:
        return None
    return (end_d - start_d).days + 1


def _shift(day, days):
    """``day + days``, or None when the result falls outside the calendar."""
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return None


def add_days(value, days):
    """Return ``value + days`` as an ISO string, or None if value is not a date."""
    parsed = parse_date(value)
    shifted = _shift(parsed, days) if parsed is not None else None
    return shifted.isoformat() if shifted else None


def coerce_duration(value):
    """Coerce a grid duration cell to an int in 1..MAX_DURATION_DAYS."""
    if isinstance(value, bool) or _is_empty(value):
        return 1
    try:
        duration = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 1
    return min(max(duration, 1), MAX_DURATION_DAYS)


def get_date_sync_updates(changed_field, new_value, current_item):
    """Return the partial update implied by editing one date field.

    Args:
        changed_field: "start_date", "end_date" or "duration_days".
            Any other field is passed through unchanged.
        new_value: The value typed into the cell.
        current_item: The row before the edit (dict or PlanItem).

    Returns:
        dict of fields to write back. Always contains ``changed_field``.
    """
    if changed_field == "start_date":
        return _on_start_changed(new_value, current_item)
    if changed_field == "end_date":
        return _on_end_changed(new_value, current_item)
    if changed_field == "duration_days":
        return _on_duration_changed(new_value, current_item)
    return {changed_field: new_value}


def _on_start_changed(new_value, item):
    start = None if _is_empty(new_value) else parse_date(new_value)
    if start is None:
        # end_date stays as it is
        return {"start_date": None, "duration_days": None}

    end = parse_date(_field(item, "end_date"))
    if end is None or end < start:
        return {
            "start_date": start.isoformat(),
            "end_date": start.isoformat(),
            "duration_days": 1,
        }
    return {
        "start_date": start.isoformat(),
        "duration_days": (end - start).days + 1,
    }


def _on_end_changed(new_value, item):
    end = None if _is_empty(new_value) else parse_date(new_value)
    if end is None:
        return {"end_date": None, "duration_days": None}

    start = parse_date(_field(item, "start_date"))
    if start is None:
        return {"end_date": end.isoformat()}
    if end < start:
        return {"end_date": start.isoformat(), "duration_days": 1}
    return {
        "end_date": end.isoformat(),
        "duration_days": (end - start).days + 1,
    }


def _span(start, duration):
    """End date and duration for ``duration`` days from ``start``.

    A span running past the last representable date is clamped to it.
    """
    end = _shift(start, duration - 1)
    if end is None:
        end = date.max
        duration = (end - start).days + 1
    return end, duration


def _on_duration_changed(new_value, item):
    duration = coerce_duration(new_value)
    start = parse_date(_field(item, "start_date"))
    if start is None:
        return {"duration_days": duration}
    end, duration = _span(start, duration)
    return {
        "duration_days": duration,
        "end_date": end.isoformat(),
    }


def normalise_dates(start, end, duration=None):
    """Derive a consistent date triple for a newly created plan item.

    start+end wins over duration; start+duration derives end; a lone
    date or a lone duration is kept as given.
    """
    start_d, end_d = parse_date(start), parse_date(end)
    if start_d and end_d:
        if end_d < start_d:
            end_d = start_d
        return {
            "start_date": start_d,
            "end_date": end_d,
            "duration_days": (end_d - start_d).days + 1,
        }
    if start_d and not _is_empty(duration):
        end_d, days = _span(start_d, coerce_duration(duration))
        return {
            "start_date": start_d,
            "end_date": end_d,
            "duration_days": days,
        }
    return {
        "start_date": start_d,
        "end_date": end_d,
        "duration_days": None if _is_empty(duration) else coerce_duration(duration),
    }
