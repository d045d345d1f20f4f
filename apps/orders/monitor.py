import logging
import threading
import traceback
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import close_old_connections, transaction
from django.db.models import F
from django.utils import timezone

from apps.audit.models import ErrorSeverity
from apps.audit.services import record_audit, record_error
from apps.common.money import format_inr
from apps.messaging.models import OutboundKind
from apps.messaging.outbox import drain_outbox, enqueue_template
from apps.orders.models import Milestone, Order, OrderStatus, ProtectionStatus
from apps.orders.protection import OrderSnapshot, evaluate_protection, is_changed
from apps.pricing.models import StoreSettings
from apps.pricing.rates import refresh_store_rates

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    examined: int = 0
    changed: list = field(default_factory=list)
    warnings: int = 0
    lapses: int = 0
    reinstatements: int = 0

    @property
    def changed_count(self):
        return len(self.changed)


def monitored_orders():
    return (
        Order.objects.filter(plan__gold_rate_protection=True)
        .exclude(plan__protection_status=ProtectionStatus.LAPSED)
        .exclude(status=OrderStatus.CANCELLED)
        .select_related("plan")
        .prefetch_related("items", "plan__milestones")
    )


class ProtectionMonitor:
    """One sweep of the gold-rate protection rules over every monitored order."""

    def __init__(self, grace_period=None, warning_interval=None):
        self.grace_period = grace_period or timedelta(days=settings.PROTECTION_GRACE_PERIOD_DAYS)
        self.warning_interval = warning_interval or timedelta(hours=settings.PROTECTION_WARNING_INTERVAL_HOURS)

    def evaluate(self, order, market_rate, now):
        snapshot = OrderSnapshot.from_order(order)
        decision = evaluate_protection(snapshot, market_rate, now, self.grace_period, self.warning_interval)
        return snapshot, decision

    def tick(self, now=None, market_rate=None):
        now = now or timezone.now()
        if market_rate is None:
            market_rate = StoreSettings.load().current_gold_rate_22k

        result = SweepResult()
        pending = []
        for order in monitored_orders():
            result.examined += 1
            snapshot, decision = self.evaluate(order, market_rate, now)
            if is_changed(snapshot, decision):
                pending.append(order.pk)

        if pending:
            with transaction.atomic():
                for order_id in pending:
                    self._apply(order_id, market_rate, now, result)

        logger.info(
            "Protection sweep at rate %s: examined=%s changed=%s warnings=%s lapses=%s reinstated=%s",
            market_rate,
            result.examined,
            result.changed_count,
            result.warnings,
            result.lapses,
            result.reinstatements,
        )
        return result

    def _apply(self, order_id, market_rate, now, result):
        # Re-evaluate on the locked row; a payment may have landed since the scan.
        Order.objects.select_for_update().filter(pk=order_id).first()
        order = monitored_orders().filter(pk=order_id).first()
        if order is None:
            return
        snapshot, decision = self.evaluate(order, market_rate, now)
        if not is_changed(snapshot, decision):
            return

        plan = order.plan
        if (plan.protection_status, plan.grace_period_end_at) != (decision.protection_status, decision.grace_period_end_at):
            plan.protection_status = decision.protection_status
            plan.grace_period_end_at = decision.grace_period_end_at
            plan.save(update_fields=["protection_status", "grace_period_end_at"])

        order_fields = []
        for attr, value in (
            ("status", decision.order_status),
            ("total_amount", decision.total_amount),
            ("additional_charges", decision.additional_charges),
        ):
            if getattr(order, attr) != value:
                setattr(order, attr, value)
                order_fields.append(attr)
        if order_fields:
            order.save(update_fields=order_fields + ["updated_at"])

        if decision.warned:
            Milestone.objects.filter(pk=decision.warned_milestone_id).update(
                warning_count=F("warning_count") + 1,
                last_warning_sent_at=now,
            )

        for intent in decision.notifications:
            enqueue_template(
                order=order,
                kind=intent.kind,
                phone=order.customer_contact,
                name=order.customer_name,
                template_name=intent.template_name,
                variables=intent.variables,
                language=intent.language,
                context=OutboundKind(intent.kind).label,
            )
            if intent.kind == OutboundKind.PROTECTION_WARNING:
                result.warnings += 1

        for line in decision.activity:
            record_audit(
                action="STATUS_UPDATE",
                entity_type="order",
                entity_id=order.id,
                details=line,
                payload={"protection_status": decision.protection_status},
            )
        if decision.repricing_delta:
            record_audit(
                action="PLAN_ADJUSTED",
                entity_type="order",
                entity_id=order.id,
                details=f"Lapse repricing +{format_inr(decision.repricing_delta)} for {order.customer_name}",
                payload={
                    "market_rate": str(market_rate),
                    "booked_rate": str(snapshot.protection_rate_booked),
                    "total_grams": str(snapshot.total_grams),
                    "delta": str(decision.repricing_delta),
                    "new_total": str(decision.total_amount),
                },
            )

        if decision.protection_status == ProtectionStatus.LAPSED:
            result.lapses += 1
        elif snapshot.protection_status == ProtectionStatus.WARNING and decision.protection_status == ProtectionStatus.ACTIVE:
            result.reinstatements += 1
        result.changed.append(order.id)

        if snapshot.protection_status != decision.protection_status:
            logger.info(
                "Order %s protection %s -> %s", order.id, snapshot.protection_status, decision.protection_status
            )


class MonitorHandle:
    """Owned, cancellable background runner for the protection sweep.

    ``start`` spawns one daemon thread that runs a tick (then optionally a
    rate refresh and an outbox drain) every ``interval`` seconds until
    ``stop`` is called. Iterations are serialized by a lock, so ticks never
    overlap even when ``run_once`` is also called directly.
    """

    def __init__(self, monitor=None, interval=None, drain=True, refresh_rate=False):
        self.monitor = monitor or ProtectionMonitor()
        self.interval = interval if interval is not None else settings.PROTECTION_MONITOR_INTERVAL_SECONDS
        self.drain = drain
        self.refresh_rate = refresh_rate
        self.iterations = 0
        self.last_result = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def run_once(self):
        with self._lock:
            if self.refresh_rate:
                refresh_store_rates(force_refresh=False)
            result = self.monitor.tick()
            if self.drain:
                drain_outbox()
            self.iterations += 1
            self.last_result = result
            return result

    def _run(self):
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as exc:
                logger.exception("Protection monitor tick failed")
                record_error("Protection Monitor", f"Monitor tick failed: {exc}", ErrorSeverity.CRITICAL, traceback.format_exc())
            finally:
                close_old_connections()
            self._stop_event.wait(self.interval)

    def start(self):
        if self.running:
            raise RuntimeError("Protection monitor is already running.")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="protection-monitor", daemon=True)
        self._thread.start()
        logger.info("Protection monitor started (interval %ss)", self.interval)
        return self

    def stop(self, timeout=None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Protection monitor stopped after %s iterations", self.iterations)

    def wait(self, timeout=None):
        """Block until ``stop`` is called; returns True once stopped."""
        return self._stop_event.wait(timeout)
