"""Task urgency scoring.

Score = urgency (0-50) + importance (3-30) + category weight (3-20).
Urgency grows with the ratio of work still needed to hours left before
the due date.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

CATEGORY_WEIGHTS: dict[str, int] = {
    "exam": 20,
    "assignment": 15,
    "work": 10,
    "personal": 5,
    "errand": 3,
}
DEFAULT_CATEGORY_WEIGHT = 5
NO_DUE_DATE_HOURS = 9999.0


def calculate_priority(
    due_date: Optional[dt.datetime],
    estimated_time: Optional[int] = None,
    importance: Optional[int] = None,
    category: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> float:
    now = now or dt.datetime.now()
    if due_date is not None:
        if due_date.tzinfo is not None:
            due_date = due_date.replace(tzinfo=None)
        hours_until_due = (due_date - now).total_seconds() / 3600
    else:
        hours_until_due = NO_DUE_DATE_HOURS
    hours_needed = (estimated_time or 60) / 60

    urgency = min(hours_needed / max(hours_until_due, 1.0) * 50, 50.0)
    importance_score = (importance or 5) * 3
    category_score = CATEGORY_WEIGHTS.get((category or "personal").lower(), DEFAULT_CATEGORY_WEIGHT)
    return urgency + importance_score + category_score
