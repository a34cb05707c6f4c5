"""
Schedule gap repair.

Source documents sometimes lose exactly one installment row during
extraction. When nine rows are found where ten were expected, the missing
row is inferred from the quarterly rhythm of the schedule.
"""

import logging
from collections import Counter
from typing import List, Sequence, Optional

from dateutil.relativedelta import relativedelta

from .models import Rata


INTERNAL_GAP_DAYS = 120
TRAILING_INTERVAL_DAYS = (80, 100)
REPAIR_MONTHS = 3

logger = logging.getLogger(__name__)


def most_common_amount(rows: Sequence[Rata]) -> float:
    """Statistical mode of the amounts; on ties the first value seen wins."""
    counts = Counter(row.totale_euro for row in rows)
    best = max(counts.values())
    for row in rows:
        if counts[row.totale_euro] == best:
            return row.totale_euro
    raise ValueError("most_common_amount() requires at least one row")


def _synthetic_row(previous: Rata, amount: float) -> Rata:
    due = previous.due_date + relativedelta(months=REPAIR_MONTHS)
    return Rata(
        scadenza=due.strftime('%d-%m-%Y'),
        totale_euro=amount,
        year=due.year,
        synthetic=True
    )


def repair_schedule(rows: Sequence[Rata], expected: int = 10,
                    log: Optional[logging.Logger] = None) -> List[Rata]:
    """
    Rebuild a schedule missing exactly one installment.

    Only runs when ``expected - 1`` rows are given. The rows are sorted by
    date and the first gap longer than 120 days gets a row three calendar
    months after its earlier date. Without such a gap, a final row three
    months after the last date is appended when the last interval is
    between 80 and 100 days. The inserted amount is the most common one.

    Args:
        rows: Extracted installments
        expected: Installments in a complete schedule

    Returns:
        The repaired rows in date order, or the input when no rule applies
    """
    log = log or logger
    if len(rows) != expected - 1 or len(rows) < 2:
        log.debug(f"Repair skipped: {len(rows)} rows, expected {expected}")
        return list(rows)

    try:
        ordered = sorted(rows, key=lambda row: row.due_date)
    except ValueError as e:
        log.warning(f"Repair skipped: unparseable due date ({e})")
        return list(rows)
    amount = most_common_amount(ordered)

    for index in range(len(ordered) - 1):
        earlier, later = ordered[index], ordered[index + 1]
        gap = (later.due_date - earlier.due_date).days
        if gap > INTERNAL_GAP_DAYS:
            missing = _synthetic_row(earlier, amount)
            log.info(
                f"Inserting missing installment {missing.scadenza} ({amount:.2f}) "
                f"in the {gap}-day gap after {earlier.scadenza}"
            )
            return ordered[:index + 1] + [missing] + ordered[index + 1:]

    interval = (ordered[-1].due_date - ordered[-2].due_date).days
    low, high = TRAILING_INTERVAL_DAYS
    if low <= interval <= high:
        missing = _synthetic_row(ordered[-1], amount)
        log.info(f"Appending final missing installment {missing.scadenza} ({amount:.2f})")
        return ordered + [missing]

    log.info(f"No gap found to repair in {len(rows)} installments")
    return list(rows)
