import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.money import EPSILON, format_inr, quantize
from apps.messaging.constants import ORDER_CONFIRMATION_TEMPLATE
from apps.messaging.models import OutboundKind
from apps.messaging.outbox import enqueue_template, enqueue_text
from apps.orders.milestones import build_manual_schedule, evaluate, generate_schedule, is_overdue
from apps.orders.models import (
    JewelryItem,
    Milestone,
    Order,
    OrderStatus,
    PaymentPlan,
    PaymentRecord,
    PlanType,
    Purity,
)
from apps.pricing.calculator import order_total, price_item
from apps.pricing.models import StoreSettings

logger = logging.getLogger(__name__)

MILESTONE_SLOTS = 6


def share_link(order):
    return f"{settings.PUBLIC_ORDER_BASE_URL}?view={order.share_token}"


def plan_label(plan):
    if plan.plan_type == PlanType.MANUAL:
        return "Custom Negotiated Plan"
    return f"{plan.months} Months Installment"


def order_confirmation_variables(order):
    milestones = list(order.plan.milestones.all())
    slots = []
    for index in range(MILESTONE_SLOTS):
        if index < len(milestones):
            milestone = milestones[index]
            slots.append(f"{milestone.due_date.day} {milestone.due_date.strftime('%b')}")
            slots.append(f"₹{format_inr(milestone.target_amount)}")
        else:
            slots.extend(["-", "-"])
    return [
        order.customer_name,
        ", ".join(item.category for item in order.items.all()),
        f"₹{format_inr(order.total_amount)}",
        plan_label(order.plan),
        *slots,
        share_link(order),
    ]


def payment_receipt_text(order, payment, balance):
    return (
        f"Payment Received: ₹{format_inr(payment.amount)} for Order #{str(order.id)[-6:]}.\n"
        f"Date: {timezone.localtime(payment.paid_at).strftime('%d/%m/%Y')}\n"
        f"Mode: {payment.method}\n"
        f"Balance: ₹{format_inr(balance)}.\n"
        "Thank you! - AuraGold"
    )


def _resolve_plan_terms(plan_data):
    template = plan_data.get("template")
    months = plan_data.get("months")
    interest = plan_data.get("interest_percentage")
    advance = plan_data.get("advance_percentage")
    if template is not None:
        months = months or template.months
        interest = template.interest_percentage if interest is None else interest
        advance = template.advance_percentage if advance is None else advance
    return months or 0, interest or Decimal("0"), advance or Decimal("0")


def create_order(*, actor, data, now=None):
    """Price the items, build the plan and persist a new ACTIVE order.

    ``data`` is the validated payload of ``OrderCreateSerializer``. Raises
    ``ValueError`` when the plan cannot be built.
    """
    now = now or timezone.now()
    store = StoreSettings.load()
    rate_24k = data.get("rate_24k") or store.current_gold_rate_24k
    rate_22k = data.get("rate_22k") or store.current_gold_rate_22k
    tax_rate = store.default_tax_rate if data.get("tax_rate") is None else data["tax_rate"]
    additional_charges = quantize(data.get("additional_charges") or 0)

    plan_data = data["plan"]
    plan_type = plan_data.get("plan_type", PlanType.PRE_CREATED)
    months, interest, advance = _resolve_plan_terms(plan_data)
    if plan_type == PlanType.MANUAL and plan_data.get("interest_percentage") is None:
        interest = Decimal("0")

    priced_items = []
    for item in data["items"]:
        pricing = price_item(
            net_weight=item["net_weight"],
            purity=item.get("purity", Purity.K22),
            wastage_percentage=item.get("wastage_percentage", Decimal("0")),
            making_charges_per_gram=item.get("making_charges_per_gram", Decimal("0")),
            stone_charges=item.get("stone_charges", Decimal("0")),
            rate_24k=rate_24k,
            rate_22k=rate_22k,
            tax_rate=tax_rate,
        )
        priced_items.append({**item, **pricing})

    total = order_total([item["final_amount"] for item in priced_items], interest, additional_charges)

    today = timezone.localdate(now)
    if plan_type == PlanType.MANUAL:
        rows = [(row["due_date"], row["cumulative_target"]) for row in plan_data.get("milestones", [])]
        schedule = build_manual_schedule(total, rows)
        months = months or len(schedule)
    else:
        schedule = generate_schedule(total, months, advance, today)

    with transaction.atomic():
        order = Order.objects.create(
            customer_name=data["customer_name"].strip(),
            customer_contact=data["customer_contact"].strip(),
            secondary_contact=data.get("secondary_contact", "").strip(),
            customer_email=data.get("customer_email", "").strip(),
            rate_24k=rate_24k,
            rate_22k=rate_22k,
            tax_rate=tax_rate,
            additional_charges=additional_charges,
            total_amount=total,
            original_total_amount=total,
            status=OrderStatus.ACTIVE,
            created_by=actor,
        )
        for item in priced_items:
            JewelryItem.objects.create(order=order, **item)

        plan = PaymentPlan.objects.create(
            order=order,
            plan_type=plan_type,
            template=plan_data.get("template"),
            months=months,
            interest_percentage=interest,
            advance_percentage=advance,
            gold_rate_protection=plan_data.get("gold_rate_protection", True),
            protection_rate_booked=plan_data.get("protection_rate_booked") or store.current_gold_rate_22k,
            protection_limit=(
                store.gold_rate_protection_max
                if plan_data.get("protection_limit") is None
                else plan_data["protection_limit"]
            ),
            protection_deadline=schedule[-1].due_date,
        )
        Milestone.objects.bulk_create(
            [
                Milestone(
                    plan=plan,
                    sequence=row.sequence,
                    due_date=row.due_date,
                    target_amount=row.target_amount,
                    cumulative_target=row.cumulative_target,
                    status=status,
                )
                for row, status in zip(schedule, evaluate(Decimal("0"), schedule))
            ]
        )

        record_audit(
            actor=actor,
            action="ORDER_CREATED",
            entity_type="order",
            entity_id=order.id,
            details=f"Order {order.id} for {order.customer_name}",
            payload={"total": str(total), "plan_type": plan_type},
        )
        enqueue_template(
            order=order,
            kind=OutboundKind.ORDER_CONFIRMATION,
            phone=order.customer_contact,
            name=order.customer_name,
            template_name=ORDER_CONFIRMATION_TEMPLATE,
            variables=order_confirmation_variables(order),
            context="Order Confirmation",
        )

    logger.info("Order %s created for %s, total %s", order.id, order.customer_name, total)
    return order


def refresh_milestones(order, total_paid=None):
    """Re-derive milestone statuses from payments; saves only changed rows."""
    milestones = list(order.plan.milestones.all())
    if total_paid is None:
        total_paid = order.total_paid
    changed = []
    for milestone, status in zip(milestones, evaluate(total_paid, milestones)):
        if milestone.status != status:
            milestone.status = status
            changed.append(milestone)
    if changed:
        Milestone.objects.bulk_update(changed, ["status"])
    return milestones


def derive_order_status(order, milestones, total_paid, now):
    if total_paid >= order.total_amount - EPSILON:
        return OrderStatus.COMPLETED
    if any(is_overdue(milestone, now) for milestone in milestones):
        return OrderStatus.OVERDUE
    return OrderStatus.ACTIVE


def record_payment(*, order_id, amount, method, actor=None, paid_at=None, note="", now=None):
    now = now or timezone.now()
    amount = quantize(amount)
    if amount <= 0:
        raise ValueError("Payment amount must be greater than 0.")

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order_id)
        if order.status == OrderStatus.CANCELLED:
            raise ValueError("Cannot record payments on a cancelled order.")

        payment = PaymentRecord.objects.create(
            order=order,
            amount=amount,
            method=method,
            paid_at=paid_at or now,
            note=note or "Payment Received",
            created_by=actor,
        )
        total_paid = order.total_paid
        milestones = refresh_milestones(order, total_paid)
        order.status = derive_order_status(order, milestones, total_paid, now)
        order.save(update_fields=["status", "updated_at"])

        record_audit(
            actor=actor,
            action="PAYMENT_RECEIVED",
            entity_type="order",
            entity_id=order.id,
            details=f"Recorded ₹{format_inr(amount)} for {order.customer_name}",
            payload={"amount": str(amount), "method": method, "total_paid": str(total_paid)},
        )
        enqueue_text(
            order=order,
            kind=OutboundKind.PAYMENT_RECEIPT,
            phone=order.customer_contact,
            name=order.customer_name,
            text=payment_receipt_text(order, payment, order.total_amount - total_paid),
            context="Payment Receipt",
        )

    logger.info("Payment %s of %s recorded on order %s", payment.id, amount, order.id)
    return order


def update_item_status(*, item_id, production_status, actor=None):
    with transaction.atomic():
        item = JewelryItem.objects.select_for_update().select_related("order").get(pk=item_id)
        previous = item.production_status
        item.production_status = production_status
        item.save(update_fields=["production_status"])
        record_audit(
            actor=actor,
            action="STATUS_UPDATE",
            entity_type="jewelry_item",
            entity_id=item.id,
            details=f"{item.category} for {item.order.customer_name}: {previous} -> {production_status}",
            payload={"order_id": str(item.order_id), "from": previous, "to": production_status},
        )
    return item


def update_contact(*, order_id, actor=None, **fields):
    allowed = {"customer_name", "customer_contact", "secondary_contact", "customer_email"}
    updates = {key: str(value).strip() for key, value in fields.items() if key in allowed and value is not None}
    if "customer_name" in updates and not updates["customer_name"]:
        raise ValueError("Customer name is required.")
    if "customer_contact" in updates and not updates["customer_contact"]:
        raise ValueError("Customer contact is required.")

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order_id)
        for key, value in updates.items():
            setattr(order, key, value)
        if updates:
            order.save(update_fields=sorted(updates) + ["updated_at"])
            record_audit(
                actor=actor,
                action="STATUS_UPDATE",
                entity_type="order",
                entity_id=order.id,
                details=f"Contact details updated for {order.customer_name}",
                payload={"fields": sorted(updates)},
            )
    return order


def cancel_order(*, order_id, actor=None, reason=""):
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order_id)
        if order.status == OrderStatus.CANCELLED:
            raise ValueError("Order is already cancelled.")
        if order.status == OrderStatus.COMPLETED:
            raise ValueError("Completed orders cannot be cancelled.")
        order.status = OrderStatus.CANCELLED
        order.save(update_fields=["status", "updated_at"])
        record_audit(
            actor=actor,
            action="STATUS_UPDATE",
            entity_type="order",
            entity_id=order.id,
            details=f"Order cancelled for {order.customer_name}",
            payload={"reason": reason},
        )
    return order