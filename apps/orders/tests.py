import time
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.messaging.models import OutboundKind, OutboundMessage
from apps.orders import services
from apps.orders.milestones import add_months, build_manual_schedule, earliest_overdue, evaluate, generate_schedule, is_overdue
from apps.orders.models import Milestone, MilestoneStatus, Order, OrderStatus, ProtectionStatus
from apps.orders.monitor import MonitorHandle, ProtectionMonitor, SweepResult
from apps.orders.protection import MilestoneSnapshot, OrderSnapshot, evaluate_protection, reprice

User = get_user_model()

GRACE = timedelta(days=7)
INTERVAL = timedelta(hours=3)


class Target:
    def __init__(self, amount):
        self.target_amount = Decimal(amount)


class MilestoneMathTests(SimpleTestCase):
    def test_evaluate_walks_cumulative_targets(self):
        targets = [Target("100"), Target("200"), Target("300")]
        self.assertEqual(
            evaluate(Decimal("150"), targets),
            [MilestoneStatus.PAID, MilestoneStatus.PARTIAL, MilestoneStatus.PENDING],
        )
        self.assertEqual(
            evaluate(Decimal("300"), targets),
            [MilestoneStatus.PAID, MilestoneStatus.PAID, MilestoneStatus.PENDING],
        )
        self.assertEqual(evaluate(Decimal("0"), targets), [MilestoneStatus.PENDING] * 3)
        self.assertEqual(evaluate(Decimal("900"), targets), [MilestoneStatus.PAID] * 3)

    def test_generated_schedule_sums_to_total(self):
        start = date(2026, 1, 31)
        schedule = generate_schedule(Decimal("66123.45"), 6, Decimal("15"), start)
        self.assertEqual(len(schedule), 7)
        self.assertEqual(schedule[0].due_date, start)
        self.assertEqual(schedule[1].due_date, date(2026, 2, 28))
        self.assertEqual(schedule[-1].cumulative_target, Decimal("66123.45"))
        self.assertEqual(sum(row.target_amount for row in schedule), schedule[-1].cumulative_target)
        cumulatives = [row.cumulative_target for row in schedule]
        self.assertEqual(cumulatives, sorted(cumulatives))

    def test_schedule_rejects_zero_months(self):
        with self.assertRaises(ValueError):
            generate_schedule(Decimal("1000"), 0, Decimal("10"), date(2026, 1, 1))

    def test_manual_schedule_snaps_to_total_within_tolerance(self):
        rows = [(date(2026, 1, 1), Decimal("400")), (date(2026, 2, 1), Decimal("999.40"))]
        schedule = build_manual_schedule(Decimal("1000"), rows)
        self.assertEqual(schedule[-1].cumulative_target, Decimal("1000"))
        self.assertEqual(schedule[-1].target_amount, Decimal("600"))

        with self.assertRaises(ValueError):
            build_manual_schedule(Decimal("1000"), [(date(2026, 1, 1), Decimal("500")), (date(2026, 2, 1), Decimal("400"))])
        with self.assertRaises(ValueError):
            build_manual_schedule(Decimal("1000"), [(date(2026, 1, 1), Decimal("900"))])

    def test_manual_rows_above_total_are_capped(self):
        rows = [(date(2026, 1, 1), Decimal("1000.80")), (date(2026, 2, 1), Decimal("1000.80"))]
        schedule = build_manual_schedule(Decimal("1000"), rows)
        self.assertEqual([row.cumulative_target for row in schedule], [Decimal("1000"), Decimal("1000")])
        self.assertEqual([row.target_amount for row in schedule], [Decimal("1000"), Decimal("0")])
        self.assertEqual(evaluate(Decimal("1000"), schedule), [MilestoneStatus.PAID, MilestoneStatus.PAID])

    def test_milestone_is_on_time_through_its_due_day(self):
        now = timezone.now()
        today = timezone.localdate(now)
        due_today = Milestone(sequence=1, due_date=today, status=MilestoneStatus.PENDING)
        due_yesterday = Milestone(sequence=2, due_date=today - timedelta(days=1), status=MilestoneStatus.PARTIAL)
        self.assertFalse(is_overdue(due_today, now))
        self.assertTrue(is_overdue(due_yesterday, now))
        self.assertEqual(earliest_overdue([due_today, due_yesterday], now), due_yesterday)

    def test_add_months_clamps_day(self):
        self.assertEqual(add_months(date(2026, 1, 31), 1), date(2026, 2, 28))
        self.assertEqual(add_months(date(2026, 11, 15), 3), date(2027, 2, 15))


class ProtectionRuleTests(SimpleTestCase):
    def setUp(self):
        self.now = timezone.now()
        self.today = timezone.localdate(self.now)

    def snapshot(self, milestone_overrides=None, **overrides):
        milestone = {
            "id": "m1",
            "sequence": 1,
            "due_date": self.today - timedelta(days=3),
            "target_amount": Decimal("6600.00"),
            "status": MilestoneStatus.PENDING,
        }
        milestone.update(milestone_overrides or {})
        values = {
            "id": "o1",
            "customer_name": "Asha",
            "customer_contact": "9876543210",
            "status": OrderStatus.ACTIVE,
            "total_amount": Decimal("66000.00"),
            "original_total_amount": Decimal("66000.00"),
            "additional_charges": Decimal("0.00"),
            "total_grams": Decimal("10.000"),
            "gold_rate_protection": True,
            "protection_status": ProtectionStatus.ACTIVE,
            "protection_rate_booked": Decimal("6600.00"),
            "protection_limit": Decimal("500.00"),
            "grace_period_end_at": None,
            "milestones": (MilestoneSnapshot(**milestone),),
        }
        values.update(overrides)
        return OrderSnapshot(**values)

    def decide(self, snapshot, rate="7200", now=None):
        return evaluate_protection(snapshot, Decimal(rate), now or self.now, GRACE, INTERVAL)

    def test_disabled_protection_never_changes(self):
        snapshot = self.snapshot(gold_rate_protection=False)
        decision = self.decide(snapshot, rate="99999")
        self.assertEqual(decision.protection_status, ProtectionStatus.ACTIVE)
        self.assertEqual(decision.total_amount, snapshot.total_amount)
        self.assertFalse(decision.notifications)

    def test_active_stays_active_without_overdue_milestone(self):
        snapshot = self.snapshot(milestone_overrides={"due_date": self.today})
        decision = self.decide(snapshot)
        self.assertEqual(decision.protection_status, ProtectionStatus.ACTIVE)
        self.assertIsNone(decision.grace_period_end_at)

        paid = self.snapshot(milestone_overrides={"status": MilestoneStatus.PAID})
        self.assertEqual(self.decide(paid).protection_status, ProtectionStatus.ACTIVE)

    def test_overdue_milestone_opens_grace_period_with_one_warning(self):
        decision = self.decide(self.snapshot(), rate="6000")
        self.assertEqual(decision.protection_status, ProtectionStatus.WARNING)
        self.assertEqual(decision.grace_period_end_at, self.now + GRACE)
        self.assertEqual(decision.warned_milestone_id, "m1")
        self.assertEqual(len(decision.notifications), 1)
        self.assertEqual(decision.notifications[0].kind, OutboundKind.PROTECTION_WARNING)
        self.assertEqual(decision.notifications[0].variables[-1], "7")

    def test_warning_lapses_only_after_grace_end(self):
        grace_end = self.now + timedelta(hours=1)
        snapshot = self.snapshot(protection_status=ProtectionStatus.WARNING, grace_period_end_at=grace_end)
        self.assertEqual(self.decide(snapshot, rate="6000").protection_status, ProtectionStatus.WARNING)

        decision = self.decide(snapshot, rate="7200", now=grace_end + timedelta(seconds=1))
        self.assertEqual(decision.protection_status, ProtectionStatus.LAPSED)
        self.assertEqual(decision.order_status, OrderStatus.OVERDUE)
        self.assertEqual(decision.repricing_delta, Decimal("6000.00"))
        self.assertEqual(decision.total_amount, Decimal("72000.00"))
        self.assertEqual(decision.additional_charges, Decimal("6000.00"))
        self.assertEqual(decision.notifications[0].kind, OutboundKind.PROTECTION_LAPSE)

    def test_lapse_below_threshold_keeps_total(self):
        grace_end = self.now - timedelta(minutes=1)
        snapshot = self.snapshot(protection_status=ProtectionStatus.WARNING, grace_period_end_at=grace_end)
        decision = self.decide(snapshot, rate="7100")
        self.assertEqual(decision.protection_status, ProtectionStatus.LAPSED)
        self.assertEqual(decision.total_amount, Decimal("66000.00"))
        self.assertEqual(decision.repricing_delta, Decimal("0"))

    def test_lapsed_is_terminal(self):
        snapshot = self.snapshot(
            protection_status=ProtectionStatus.LAPSED,
            milestone_overrides={"status": MilestoneStatus.PAID},
        )
        decision = self.decide(snapshot)
        self.assertEqual(decision.protection_status, ProtectionStatus.LAPSED)
        self.assertFalse(decision.notifications)

    def test_warning_returns_to_active_when_nothing_is_overdue(self):
        snapshot = self.snapshot(
            protection_status=ProtectionStatus.WARNING,
            grace_period_end_at=self.now + timedelta(days=2),
            milestone_overrides={"status": MilestoneStatus.PAID},
        )
        decision = self.decide(snapshot)
        self.assertEqual(decision.protection_status, ProtectionStatus.ACTIVE)
        self.assertIsNone(decision.grace_period_end_at)
        self.assertIn("Protection Restored for Asha", decision.activity[0])

    def test_rewarns_at_most_once_per_interval_above_threshold(self):
        grace_end = self.now + timedelta(days=5)
        recent = self.snapshot(
            protection_status=ProtectionStatus.WARNING,
            grace_period_end_at=grace_end,
            milestone_overrides={"last_warning_sent_at": self.now - timedelta(hours=1), "warning_count": 1},
        )
        self.assertFalse(self.decide(recent).warned)

        stale = self.snapshot(
            protection_status=ProtectionStatus.WARNING,
            grace_period_end_at=grace_end,
            milestone_overrides={"last_warning_sent_at": self.now - timedelta(hours=3), "warning_count": 1},
        )
        self.assertTrue(self.decide(stale).warned)
        self.assertFalse(self.decide(stale, rate="7100").warned)

    def test_reprice_uses_booked_rate_difference(self):
        new_total, delta = reprice(self.snapshot(), Decimal("7200"))
        self.assertEqual(delta, Decimal("6000.00"))
        self.assertEqual(new_total, Decimal("72000.00"))


class FakeMonitor:
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def tick(self):
        self.calls += 1
        if self.error:
            raise self.error
        return SweepResult(examined=1)


class MonitorHandleTests(SimpleTestCase):
    def wait_for(self, condition, timeout=2):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(0.01)
        return condition()

    def test_start_runs_ticks_until_stopped(self):
        monitor = FakeMonitor()
        handle = MonitorHandle(monitor=monitor, interval=0.01, drain=False)
        handle.start()
        try:
            self.assertTrue(handle.running)
            self.assertTrue(self.wait_for(lambda: handle.iterations >= 2))
            with self.assertRaises(RuntimeError):
                handle.start()
        finally:
            handle.stop(timeout=2)
        self.assertFalse(handle.running)
        calls = monitor.calls
        time.sleep(0.05)
        self.assertEqual(monitor.calls, calls)
        self.assertEqual(handle.last_result.examined, 1)

    def test_failed_tick_is_recorded_and_loop_continues(self):
        monitor = FakeMonitor(error=RuntimeError("database unavailable"))
        handle = MonitorHandle(monitor=monitor, interval=0.01, drain=False)
        with mock.patch("apps.orders.monitor.record_error") as record_error:
            handle.start()
            try:
                self.assertTrue(self.wait_for(lambda: monitor.calls >= 2))
            finally:
                handle.stop(timeout=2)
        self.assertGreaterEqual(record_error.call_count, 1)
        self.assertIn("database unavailable", record_error.call_args[0][1])


class OrderTestMixin:
    def setUp(self):
        self.admin = User.objects.create_user(username="admin_ord", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff_ord", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def order_data(self, **plan):
        plan_data = {
            "plan_type": "PRE_CREATED",
            "months": 3,
            "interest_percentage": Decimal("0"),
            "advance_percentage": Decimal("10"),
            "gold_rate_protection": True,
            "protection_rate_booked": Decimal("6600.00"),
            "protection_limit": Decimal("500.00"),
        }
        plan_data.update(plan)
        return {
            "customer_name": "Asha Rao",
            "customer_contact": "9876543210",
            "rate_24k": Decimal("7200.00"),
            "rate_22k": Decimal("6600.00"),
            "tax_rate": Decimal("0"),
            "items": [
                {
                    "category": "Necklace",
                    "gross_weight": Decimal("10.500"),
                    "net_weight": Decimal("10.000"),
                    "purity": "22K",
                    "wastage_percentage": Decimal("0"),
                    "making_charges_per_gram": Decimal("0"),
                    "stone_charges": Decimal("0"),
                }
            ],
            "plan": plan_data,
        }

    def create_order(self, **plan):
        return services.create_order(actor=self.admin, data=self.order_data(**plan))

    def make_first_milestone_overdue(self, order, days=2):
        Milestone.objects.filter(plan__order=order, sequence=1).update(
            due_date=timezone.localdate() - timedelta(days=days)
        )


class ProtectionMonitorTests(OrderTestMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.monitor = ProtectionMonitor(grace_period=GRACE, warning_interval=INTERVAL)
        self.rate = Decimal("7200.00")

    def warnings(self, order):
        return OutboundMessage.objects.filter(order=order, kind=OutboundKind.PROTECTION_WARNING)

    def test_new_order_schedule_and_confirmation(self):
        order = self.create_order()
        self.assertEqual(order.total_amount, Decimal("66000.00"))
        milestones = list(order.plan.milestones.all())
        self.assertEqual(len(milestones), 4)
        self.assertEqual(milestones[0].target_amount, Decimal("6600.00"))
        self.assertEqual(sum(m.target_amount for m in milestones), milestones[-1].cumulative_target)
        self.assertEqual(milestones[-1].cumulative_target, order.total_amount)
        confirmation = OutboundMessage.objects.get(order=order, kind=OutboundKind.ORDER_CONFIRMATION)
        self.assertEqual(len(confirmation.variables), 17)
        self.assertEqual(confirmation.variables[0], "Asha Rao")
        self.assertTrue(confirmation.variables[-1].endswith(f"?view={order.share_token}"))
        self.assertTrue(AuditLog.objects.filter(action="ORDER_CREATED", entity_id=str(order.id)).exists())

    def test_tick_leaves_orders_without_overdue_milestones_alone(self):
        order = self.create_order()
        result = self.monitor.tick(market_rate=self.rate)
        self.assertEqual(result.examined, 1)
        self.assertEqual(result.changed_count, 0)
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.ACTIVE)

    def test_overdue_order_enters_warning_with_single_notification(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        now = timezone.now()

        result = self.monitor.tick(now=now, market_rate=self.rate)
        self.assertEqual(result.changed, [order.id])
        self.assertEqual(result.warnings, 1)

        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.WARNING)
        self.assertEqual(order.plan.grace_period_end_at, now + GRACE)
        self.assertEqual(self.warnings(order).count(), 1)
        milestone = Milestone.objects.get(plan__order=order, sequence=1)
        self.assertEqual(milestone.warning_count, 1)
        self.assertEqual(milestone.last_warning_sent_at, now)
        self.assertTrue(
            AuditLog.objects.filter(action="STATUS_UPDATE", details__startswith="Protection Risk").exists()
        )

    def test_repeated_ticks_are_idempotent_inside_the_interval(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        now = timezone.now()
        self.monitor.tick(now=now, market_rate=self.rate)

        second = self.monitor.tick(now=now + timedelta(hours=1), market_rate=self.rate)
        self.assertEqual(second.changed_count, 0)
        self.assertEqual(self.warnings(order).count(), 1)

        third = self.monitor.tick(now=now + timedelta(hours=3, minutes=1), market_rate=self.rate)
        self.assertEqual(third.warnings, 1)
        self.assertEqual(self.warnings(order).count(), 2)
        self.assertEqual(Milestone.objects.get(plan__order=order, sequence=1).warning_count, 2)

    def test_no_rewarning_below_threshold(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        now = timezone.now()
        self.monitor.tick(now=now, market_rate=self.rate)
        result = self.monitor.tick(now=now + timedelta(hours=5), market_rate=Decimal("7000.00"))
        self.assertEqual(result.changed_count, 0)
        self.assertEqual(self.warnings(order).count(), 1)

    def test_grace_expiry_lapses_and_reprices(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        now = timezone.now()
        self.monitor.tick(now=now, market_rate=self.rate)

        result = self.monitor.tick(now=now + GRACE + timedelta(minutes=1), market_rate=self.rate)
        self.assertEqual(result.lapses, 1)

        order.refresh_from_db()
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.LAPSED)
        self.assertEqual(order.status, OrderStatus.OVERDUE)
        self.assertEqual(order.total_amount, Decimal("72000.00"))
        self.assertEqual(order.additional_charges, Decimal("6000.00"))
        self.assertEqual(order.original_total_amount, Decimal("66000.00"))
        self.assertTrue(OutboundMessage.objects.filter(order=order, kind=OutboundKind.PROTECTION_LAPSE).exists())
        self.assertTrue(AuditLog.objects.filter(action="PLAN_ADJUSTED", entity_id=str(order.id)).exists())

        services.record_payment(order_id=order.id, amount=Decimal("72000.00"), method="CASH")
        later = self.monitor.tick(now=now + GRACE + timedelta(days=1), market_rate=self.rate)
        self.assertEqual(later.examined, 0)
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.LAPSED)

    def test_payment_restores_protection(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        now = timezone.now()
        self.monitor.tick(now=now, market_rate=self.rate)

        services.record_payment(order_id=order.id, amount=Decimal("6600.00"), method="UPI")
        result = self.monitor.tick(now=now + timedelta(hours=1), market_rate=self.rate)
        self.assertEqual(result.reinstatements, 1)
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.ACTIVE)
        self.assertIsNone(order.plan.grace_period_end_at)

    def test_disabled_protection_is_not_monitored(self):
        order = self.create_order(gold_rate_protection=False)
        self.make_first_milestone_overdue(order)
        result = self.monitor.tick(market_rate=Decimal("99999.00"))
        self.assertEqual(result.examined, 0)
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.ACTIVE)
        self.assertFalse(self.warnings(order).exists())

    def test_command_runs_single_sweep(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        out = StringIO()
        call_command("run_protection_monitor", "--once", "--no-drain", stdout=out)
        self.assertIn("Examined: 1 Changed: 1", out.getvalue())
        order.plan.refresh_from_db()
        self.assertEqual(order.plan.protection_status, ProtectionStatus.WARNING)


class OrderApiTests(OrderTestMixin, APITestCase):
    def order_payload(self, **plan):
        data = self.order_data(**plan)
        return {
            "customer_name": data["customer_name"],
            "customer_contact": data["customer_contact"],
            "rate_24k": "7200.00",
            "rate_22k": "6600.00",
            "tax_rate": "0",
            "items": [
                {
                    "category": "Necklace",
                    "gross_weight": "10.500",
                    "net_weight": "10.000",
                    "purity": "22K",
                }
            ],
            "plan": {key: str(value) if isinstance(value, Decimal) else value for key, value in data["plan"].items()},
        }

    def test_create_order_through_api(self):
        self.auth_as("staff_ord", "staff123")
        response = self.client.post("/api/v1/orders/", self.order_payload(), format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_amount"], "66000.00")
        self.assertEqual(response.data["status"], OrderStatus.ACTIVE)
        self.assertEqual(len(response.data["plan"]["milestones"]), 4)
        self.assertEqual(response.data["balance_due"], "66000.00")

    def test_manual_plan_must_reach_order_total(self):
        self.auth_as("staff_ord", "staff123")
        payload = self.order_payload()
        payload["plan"] = {
            "plan_type": "MANUAL",
            "milestones": [
                {"due_date": str(timezone.localdate()), "cumulative_target": "10000.00"},
                {"due_date": str(timezone.localdate() + timedelta(days=30)), "cumulative_target": "50000.00"},
            ],
        }
        response = self.client.post("/api/v1/orders/", payload, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_plan")
        self.assertFalse(Order.objects.exists())

    def test_record_payment_updates_milestones_and_queues_receipt(self):
        order = self.create_order()
        self.auth_as("staff_ord", "staff123")
        response = self.client.post(
            f"/api/v1/orders/{order.id}/payments/",
            {"amount": "6600.00", "method": "UPI"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_paid"], "6600.00")
        self.assertEqual(response.data["balance_due"], "59400.00")
        self.assertEqual(response.data["plan"]["milestones"][0]["status"], MilestoneStatus.PAID)
        self.assertEqual(response.data["plan"]["milestones"][1]["status"], MilestoneStatus.PENDING)
        receipt = OutboundMessage.objects.get(order=order, kind=OutboundKind.PAYMENT_RECEIPT)
        self.assertIn("Balance: ₹59,400", receipt.text)
        self.assertTrue(AuditLog.objects.filter(action="PAYMENT_RECEIVED", entity_id=str(order.id)).exists())

        invalid = self.client.post(f"/api/v1/orders/{order.id}/payments/", {"amount": "-5"}, format="json")
        self.assertEqual(invalid.status_code, 400)

    def test_full_payment_completes_order(self):
        order = self.create_order()
        self.auth_as("staff_ord", "staff123")
        response = self.client.post(
            f"/api/v1/orders/{order.id}/payments/",
            {"amount": "66000.00", "method": "BANK_TRANSFER"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], OrderStatus.COMPLETED)

    def test_cancel_requires_capability_and_blocks_payments(self):
        order = self.create_order()
        self.auth_as("staff_ord", "staff123")
        forbidden = self.client.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
        self.assertEqual(forbidden.status_code, 403)

        self.auth_as("admin_ord", "admin123")
        cancelled = self.client.post(f"/api/v1/orders/{order.id}/cancel/", {"reason": "Customer request"}, format="json")
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.data["status"], OrderStatus.CANCELLED)

        again = self.client.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.data["code"], "invalid_state")

        payment = self.client.post(f"/api/v1/orders/{order.id}/payments/", {"amount": "100.00"}, format="json")
        self.assertEqual(payment.status_code, 400)
        self.assertEqual(payment.data["code"], "invalid_payment")

    def test_item_status_update(self):
        order = self.create_order()
        item = order.items.get()
        self.auth_as("staff_ord", "staff123")
        response = self.client.post(
            f"/api/v1/orders/{order.id}/item-status/",
            {"item": str(item.id), "production_status": "READY"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        item.refresh_from_db()
        self.assertEqual(item.production_status, "READY")

    def test_contact_update(self):
        order = self.create_order()
        self.auth_as("staff_ord", "staff123")
        response = self.client.post(
            f"/api/v1/orders/{order.id}/contact/",
            {"customer_contact": "9123456780", "customer_email": "asha@example.com"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["customer_contact"], "9123456780")
        self.assertEqual(response.data["customer_email"], "asha@example.com")

    def test_public_share_link(self):
        order = self.create_order()
        response = self.client.get("/api/v1/public/orders/", {"view": order.share_token})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["customer_name"], "Asha Rao")
        self.assertNotIn("customer_contact", response.data)
        self.assertEqual(len(response.data["plan"]["milestones"]), 4)

        missing = self.client.get("/api/v1/public/orders/", {"view": "not-a-token"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.data["code"], "not_found")

    def test_orders_require_authentication(self):
        response = self.client.get("/api/v1/orders/")
        self.assertEqual(response.status_code, 401)

    def test_collections_tabs(self):
        order = self.create_order()
        self.make_first_milestone_overdue(order)
        self.auth_as("staff_ord", "staff123")

        overdue = self.client.get("/api/v1/collections/", {"tab": "OVERDUE"})
        self.assertEqual(overdue.status_code, 200)
        self.assertEqual(len(overdue.data["results"]), 1)
        self.assertEqual(overdue.data["results"][0]["sequence"], 1)

        planned = self.client.get("/api/v1/collections/", {"tab": "PLANNED", "q": "asha"})
        self.assertEqual(len(planned.data["results"]), 4)
        nobody = self.client.get("/api/v1/collections/", {"tab": "PLANNED", "q": "nobody"})
        self.assertEqual(nobody.data["results"], [])

        services.record_payment(order_id=order.id, amount=Decimal("6600.00"), method="CASH")
        received = self.client.get("/api/v1/collections/", {"tab": "RECEIVED"})
        self.assertEqual(len(received.data["results"]), 1)
        self.assertEqual(received.data["results"][0]["amount"], "6600.00")
        overdue = self.client.get("/api/v1/collections/", {"tab": "OVERDUE"})
        self.assertEqual(overdue.data["results"], [])

        invalid = self.client.get("/api/v1/collections/", {"tab": "SOMEDAY"})
        self.assertEqual(invalid.status_code, 400)
