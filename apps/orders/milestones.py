import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.utils import timezone

from apps.common.money import EPSILON, round_units, to_decimal
from apps.orders.models import MilestoneStatus

MANUAL_TOTAL_TOLERANCE = Decimal("1")


@dataclass(frozen=True)
class PlannedMilestone:
    sequence: int
    due_date: date
    target_amount: Decimal
    cumulative_target: Decimal


def evaluate(total_paid, milestones):
    """Return the derived status of each milestone, in order.

    Targets are accumulated while walking the list; ``milestones`` only
    needs a ``target_amount`` attribute.
    """
    paid = to_decimal(total_paid)
    running = Decimal("0")
    statuses = []
    for milestone in milestones:
        target = to_decimal(milestone.target_amount)
        running += target
        if paid >= running:
            statuses.append(MilestoneStatus.PAID)
        elif paid > running - target + EPSILON:
            statuses.append(MilestoneStatus.PARTIAL)
        else:
            statuses.append(MilestoneStatus.PENDING)
    return statuses


def is_overdue(milestone, now):
    """Unpaid and due before today; a milestone is on time through its due day."""
    return milestone.status != MilestoneStatus.PAID and milestone.due_date < timezone.localdate(now)


def earliest_overdue(milestones, now):
    overdue = [milestone for milestone in milestones if is_overdue(milestone, now)]
    if not overdue:
        return None
    return min(overdue, key=lambda milestone: (milestone.due_date, milestone.sequence))


def add_months(start, months):
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _from_cumulatives(rows):
    planned = []
    previous = Decimal("0")
    for sequence, (due_date, cumulative) in enumerate(rows, start=1):
        planned.append(
            PlannedMilestone(
                sequence=sequence,
                due_date=due_date,
                target_amount=cumulative - previous,
                cumulative_target=cumulative,
            )
        )
        previous = cumulative
    return planned


def generate_schedule(total, months, advance_percentage, start):
    """Advance due on ``start`` plus one installment per month.

    Cumulative targets are rounded to whole units and the last one is
    pinned to ``total``.
    """
    total = to_decimal(total)
    if months < 1:
        raise ValueError("Plan must span at least one month.")
    advance = total * to_decimal(advance_percentage) / Decimal("100")
    per_month = (total - advance) / months

    rows = [(start, round_units(advance))]
    for month in range(1, months + 1):
        rows.append((add_months(start, month), round_units(advance + per_month * month)))
    rows[-1] = (rows[-1][0], total)
    return _from_cumulatives(rows)


def build_manual_schedule(total, rows):
    """Validate operator-entered ``(due_date, cumulative_target)`` rows."""
    total = to_decimal(total)
    if not rows:
        raise ValueError("At least one milestone is required.")
    previous = Decimal("0")
    cleaned = []
    for due_date, cumulative in rows:
        cumulative = to_decimal(cumulative)
        if cumulative < previous:
            raise ValueError("Cumulative targets must not decrease.")
        cleaned.append((due_date, cumulative))
        previous = cumulative
    if abs(previous - total) > MANUAL_TOTAL_TOLERANCE:
        raise ValueError(f"Final milestone must equal the order total ({total}).")
    # Cap rows inside the tolerance at the total.
    cleaned = [(due_date, min(cumulative, total)) for due_date, cumulative in cleaned]
    cleaned[-1] = (cleaned[-1][0], total)
    return _from_cumulatives(cleaned)
