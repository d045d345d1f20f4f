"""Gold-rate protection state machine.

``evaluate_protection`` is a pure function over an ``OrderSnapshot``: it
never touches the database and never sends anything. The monitor applies
the returned ``ProtectionDecision`` and turns its notifications into
outbox rows.

Transitions, in evaluation order for one sweep:

* ACTIVE with an overdue unpaid milestone enters WARNING and opens the
  grace period. The earliest overdue milestone is warned once.
* WARNING past the grace end becomes LAPSED, the order goes OVERDUE and
  is repriced when the market rate is above the protected threshold.
* WARNING with the market rate above the threshold re-warns the earliest
  overdue milestone at most once per warning interval.
* WARNING with no overdue milestone returns to ACTIVE.

LAPSED is terminal.
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from apps.common.money import format_inr, quantize
from apps.messaging.constants import PROTECTION_LAPSED_TEMPLATE, RATE_WARNING_TEMPLATE
from apps.messaging.models import OutboundKind
from apps.orders.milestones import earliest_overdue
from apps.orders.models import OrderStatus, ProtectionStatus

TEMPLATE_LANGUAGE = "en_US"


@dataclass(frozen=True)
class MilestoneSnapshot:
    id: object
    sequence: int
    due_date: object
    target_amount: Decimal
    status: str
    warning_count: int = 0
    last_warning_sent_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderSnapshot:
    id: object
    customer_name: str
    customer_contact: str
    status: str
    total_amount: Decimal
    original_total_amount: Decimal
    additional_charges: Decimal
    total_grams: Decimal
    gold_rate_protection: bool
    protection_status: str
    protection_rate_booked: Decimal
    protection_limit: Decimal
    grace_period_end_at: Optional[datetime]
    milestones: tuple = ()

    @property
    def threshold(self):
        return self.protection_rate_booked + self.protection_limit

    @classmethod
    def from_order(cls, order):
        plan = order.plan
        return cls(
            id=order.id,
            customer_name=order.customer_name,
            customer_contact=order.customer_contact,
            status=order.status,
            total_amount=order.total_amount,
            original_total_amount=order.original_total_amount,
            additional_charges=order.additional_charges,
            total_grams=order.total_grams,
            gold_rate_protection=plan.gold_rate_protection,
            protection_status=plan.protection_status,
            protection_rate_booked=plan.protection_rate_booked,
            protection_limit=plan.protection_limit,
            grace_period_end_at=plan.grace_period_end_at,
            milestones=tuple(
                MilestoneSnapshot(
                    id=milestone.id,
                    sequence=milestone.sequence,
                    due_date=milestone.due_date,
                    target_amount=milestone.target_amount,
                    status=milestone.status,
                    warning_count=milestone.warning_count,
                    last_warning_sent_at=milestone.last_warning_sent_at,
                )
                for milestone in plan.milestones.all()
            ),
        )


@dataclass(frozen=True)
class NotificationIntent:
    kind: str
    template_name: str
    variables: tuple
    language: str = TEMPLATE_LANGUAGE


@dataclass(frozen=True)
class ProtectionDecision:
    protection_status: str
    grace_period_end_at: Optional[datetime]
    order_status: str
    total_amount: Decimal
    additional_charges: Decimal
    repricing_delta: Decimal = Decimal("0")
    warned_milestone_id: object = None
    notifications: tuple = ()
    activity: tuple = ()

    @property
    def warned(self):
        return self.warned_milestone_id is not None


def _unchanged(snapshot):
    return ProtectionDecision(
        protection_status=snapshot.protection_status,
        grace_period_end_at=snapshot.grace_period_end_at,
        order_status=snapshot.status,
        total_amount=snapshot.total_amount,
        additional_charges=snapshot.additional_charges,
    )


def is_changed(snapshot, decision):
    return (
        decision.protection_status != snapshot.protection_status
        or decision.grace_period_end_at != snapshot.grace_period_end_at
        or decision.order_status != snapshot.status
        or decision.total_amount != snapshot.total_amount
        or decision.warned
    )


def days_left(grace_period_end_at, now):
    if grace_period_end_at is None:
        return 0
    seconds = (grace_period_end_at - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def warning_intent(snapshot, milestone, market_rate, grace_period_end_at, now):
    return NotificationIntent(
        kind=OutboundKind.PROTECTION_WARNING,
        template_name=RATE_WARNING_TEMPLATE,
        variables=(
            snapshot.customer_name,
            format_inr(market_rate),
            format_inr(milestone.target_amount),
            str(days_left(grace_period_end_at, now)),
        ),
    )


def lapse_intent(snapshot, total_amount):
    return NotificationIntent(
        kind=OutboundKind.PROTECTION_LAPSE,
        template_name=PROTECTION_LAPSED_TEMPLATE,
        variables=(snapshot.customer_name, format_inr(total_amount)),
    )


def reprice(snapshot, market_rate):
    """Return ``(new_total, delta)`` for a lapse at ``market_rate``."""
    delta = quantize(snapshot.total_grams * (market_rate - snapshot.protection_rate_booked))
    base = snapshot.original_total_amount or snapshot.total_amount
    return quantize(base + delta), delta


def evaluate_protection(snapshot, market_rate, now, grace_period, warning_interval):
    if not snapshot.gold_rate_protection:
        return _unchanged(snapshot)
    if snapshot.protection_status == ProtectionStatus.LAPSED or snapshot.status == OrderStatus.CANCELLED:
        return _unchanged(snapshot)

    decision = _unchanged(snapshot)
    overdue = earliest_overdue(snapshot.milestones, now)

    if overdue is None:
        if snapshot.protection_status == ProtectionStatus.WARNING:
            return replace(
                decision,
                protection_status=ProtectionStatus.ACTIVE,
                grace_period_end_at=None,
                activity=(f"Protection Restored for {snapshot.customer_name} (Payment Received)",),
            )
        return decision

    if decision.protection_status == ProtectionStatus.ACTIVE or decision.grace_period_end_at is None:
        grace_end = now + grace_period
        decision = replace(
            decision,
            protection_status=ProtectionStatus.WARNING,
            grace_period_end_at=grace_end,
            warned_milestone_id=overdue.id,
            notifications=(warning_intent(snapshot, overdue, market_rate, grace_end, now),),
            activity=(f"Protection Risk: Grace period started for {snapshot.customer_name}",),
        )
        return decision

    if now > decision.grace_period_end_at:
        total_amount = snapshot.total_amount
        additional_charges = snapshot.additional_charges
        delta = Decimal("0")
        activity = [f"Protection Lapsed for {snapshot.customer_name}"]
        if market_rate > snapshot.threshold:
            total_amount, delta = reprice(snapshot, market_rate)
            additional_charges = quantize(additional_charges + delta)
            activity.append(f"Order repriced by {format_inr(delta)} for {snapshot.customer_name}")
        return replace(
            decision,
            protection_status=ProtectionStatus.LAPSED,
            order_status=OrderStatus.OVERDUE,
            total_amount=total_amount,
            additional_charges=additional_charges,
            repricing_delta=delta,
            notifications=(lapse_intent(snapshot, total_amount),),
            activity=tuple(activity),
        )

    if market_rate > snapshot.threshold:
        last_warned = overdue.last_warning_sent_at
        if last_warned is None or now - last_warned >= warning_interval:
            decision = replace(
                decision,
                warned_milestone_id=overdue.id,
                notifications=(
                    warning_intent(snapshot, overdue, market_rate, decision.grace_period_end_at, now),
                ),
            )
    return decision

