"""
Minimal iCalendar reader for public-holiday feeds.

Only VEVENT start dates and summaries are read; recurrence rules and
time zones are ignored since holidays are whole calendar days.
"""

import logging
from datetime import date
from typing import List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "Untitled Event"


def _parse_ics_date(value: str):
    digits = value.strip()[:8]
    if len(digits) < 8 or not digits.isdigit():
        return None
    try:
        return date(int(digits[0:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        return None


def parse_ics(text: str) -> List[Tuple[date, str]]:
    """Return (date, name) for each VEVENT that has a parseable DTSTART."""
    events = []
    current = None

    for raw_line in text.splitlines():
        line = raw_line.strip()

        if line.startswith("BEGIN:VEVENT"):
            current = {}
        elif line.startswith("END:VEVENT"):
            if current is not None and current.get("date"):
                events.append((current["date"], current.get("name") or DEFAULT_EVENT_NAME))
            current = None
        elif current is None:
            continue
        elif line.startswith("DTSTART"):
            # DTSTART;VALUE=DATE:20240101 or DTSTART:20240101T000000Z
            _, _, value = line.partition(":")
            parsed = _parse_ics_date(value)
            if parsed is None:
                logger.warning("Skipping unparseable DTSTART %r", value)
            current["date"] = parsed
        elif line.startswith("SUMMARY"):
            _, _, value = line.partition(":")
            current["name"] = value.strip()

    return events
