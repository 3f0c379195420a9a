"""
Envelope accounting rules.

For a category and a calendar month:
    assigned = sum of the month's assignments
    activity = sum of split amounts dated within the month
    balance  = previous month's balance + assigned + activity

Balance is a running total seeded at zero before the category's first
active month. Negative balances (overspending) are reported as is.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from pincher.domain.helpers.dates import first_of_month


@dataclass
class EnvelopeMonth:
    assigned: int = 0
    activity: int = 0
    balance: int = 0


def bucket_by_month(rows: Iterable[Tuple[Optional[int], date, int]]) -> Dict:
    """Sum (category_id, day, amount) rows into {(category_id, month): amount}."""
    buckets = defaultdict(int)
    for category_id, day, amount in rows:
        buckets[(category_id, first_of_month(day))] += amount or 0
    return buckets


def running_balances(monthly: Dict[date, Tuple[int, int]]) -> Dict[date, int]:
    """
    Apply the carry-forward recurrence to {month: (assigned, activity)}.
    """
    balances = {}
    balance = 0
    for month in sorted(monthly):
        assigned, activity = monthly[month]
        balance = balance + assigned + activity
        balances[month] = balance
    return balances


def envelope_totals(
    assigned_rows: Iterable[Tuple[int, date, int]],
    activity_rows: Iterable[Tuple[Optional[int], date, int]],
    month: date,
) -> Dict[int, EnvelopeMonth]:
    """
    Per-category assigned/activity/balance for `month`.

    Rows dated after `month` are ignored; uncategorized activity
    (category_id None) never reaches an envelope.
    """
    month = first_of_month(month)
    assigned = bucket_by_month(assigned_rows)
    activity = bucket_by_month(activity_rows)

    series = defaultdict(dict)
    for (category_id, m) in set(assigned) | set(activity):
        if category_id is None or m > month:
            continue
        series[category_id][m] = (
            assigned.get((category_id, m), 0),
            activity.get((category_id, m), 0),
        )

    totals = {}
    for category_id, monthly in series.items():
        balances = running_balances(monthly)
        current = monthly.get(month, (0, 0))
        totals[category_id] = EnvelopeMonth(
            assigned=current[0],
            activity=current[1],
            balance=balances[max(balances)],
        )
    return totals
