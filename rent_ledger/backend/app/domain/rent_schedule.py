# backend/app/domain/rent_schedule.py
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

WEEKLY = "WEEKLY"
MONTHLY = "MONTHLY"
QUARTERLY = "QUARTERLY"
YEARLY = "YEARLY"

CYCLES = (MONTHLY, WEEKLY, QUARTERLY, YEARLY)

# due_day is a day-of-month for every cycle (WEEKLY included), 1..31,
# clamped to the month's last day when the month is shorter.
MIN_DUE_DAY = 1
MAX_DUE_DAY = 31


class OccupancyEnded(ValueError):
    """Next period would start after the occupancy's active_to. Terminal."""


@dataclass(frozen=True)
class PeriodDates:
    period_start: date
    period_end: date
    due_date: date


def last_day_of_month(y: int, m: int) -> date:
    return date(y, m, calendar.monthrange(y, m)[1])


def add_months(y: int, m: int, months: int) -> tuple[int, int]:
    idx = (y * 12 + (m - 1)) + int(months)
    return idx // 12, (idx % 12) + 1


def clamp_day(y: int, m: int, day: int) -> date:
    return date(y, m, min(int(day), calendar.monthrange(y, m)[1]))


def normalize_cycle(raw: object) -> str:
    c = str(raw or "").strip().upper()
    if c not in CYCLES:
        raise ValueError(f"Cycle must be one of: {', '.join(CYCLES)}")
    return c


def period_end_for(cycle: str, start: date) -> date:
    c = normalize_cycle(cycle)
    if c == WEEKLY:
        return start + timedelta(days=6)
    if c == MONTHLY:
        return last_day_of_month(start.year, start.month)
    if c == QUARTERLY:
        y, m = add_months(start.year, start.month, 3)
        return last_day_of_month(y, m)
    # YEARLY: last day of start's month, one year on
    return last_day_of_month(start.year + 1, start.month)


def due_date_for(due_day: int, start: date) -> date:
    due = clamp_day(start.year, start.month, due_day)
    if due < start:
        y, m = add_months(start.year, start.month, 1)
        due = clamp_day(y, m, due_day)
    return due


def next_period_start(active_from: date, prior_period_end: Optional[date]) -> date:
    if prior_period_end is not None:
        return prior_period_end + timedelta(days=1)
    return active_from


def compute_next_period(
    *,
    cycle: str,
    due_day: int,
    active_from: date,
    active_to: Optional[date] = None,
    prior_period_end: Optional[date] = None,
) -> PeriodDates:
    """
    Dates for the billing period that follows prior_period_end (or the first one
    of the occupancy when there is no prior period).

    Raises OccupancyEnded when the occupancy is over before the period would start,
    ValueError on a bad cycle or due_day.
    """
    if not (MIN_DUE_DAY <= int(due_day) <= MAX_DUE_DAY):
        raise ValueError(f"Due day must be between {MIN_DUE_DAY} and {MAX_DUE_DAY}")

    start = next_period_start(active_from, prior_period_end)

    if active_to is not None and start > active_to:
        raise OccupancyEnded("Cannot generate period: occupancy has ended")

    end = period_end_for(cycle, start)
    if active_to is not None and end > active_to:
        end = active_to

    return PeriodDates(period_start=start, period_end=end, due_date=due_date_for(int(due_day), start))
