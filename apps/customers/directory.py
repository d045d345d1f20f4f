"""
Customer directory: manual profiles merged with the customers implied by
order contact details, keyed by normalized phone.

The merged list is cached under a versioned key. Saving or deleting an
order, payment or customer bumps the version (see ``signals``), so readers
never see a list older than the last write.
"""
from decimal import Decimal

from django.core.cache import cache

from apps.customers.models import BehavioralTag, Customer, normalize_phone
from apps.orders.models import Order, OrderStatus

VERSION_KEY = "customers:directory:version"
CACHE_TIMEOUT = 300


def current_version():
    cache.add(VERSION_KEY, 1, timeout=None)
    return cache.get(VERSION_KEY) or 1


def bump_version():
    cache.add(VERSION_KEY, 1, timeout=None)
    try:
        cache.incr(VERSION_KEY)
    except ValueError:
        # Evicted between add and incr.
        cache.set(VERSION_KEY, 2, timeout=None)


def _manual_entry(customer):
    return {
        "id": str(customer.id),
        "name": customer.name,
        "contact": customer.contact,
        "contact_normalized": customer.contact_normalized,
        "secondary_contact": customer.secondary_contact,
        "email": customer.email,
        "join_date": customer.join_date,
        "reliability_score": customer.reliability_score,
        "behavioral_tag": customer.behavioral_tag,
        "ai_insight": customer.ai_insight,
        "last_analysis_date": customer.last_analysis_date,
        "is_manual": True,
        "order_ids": [],
        "total_spent": Decimal("0.00"),
    }


def _derived_entry(order, normalized):
    return {
        "id": f"CUST-{normalized}",
        "name": order.customer_name,
        "contact": order.customer_contact,
        "contact_normalized": normalized,
        "secondary_contact": order.secondary_contact,
        "email": order.customer_email,
        "join_date": order.created_at,
        "reliability_score": None,
        "behavioral_tag": BehavioralTag.UNKNOWN,
        "ai_insight": "",
        "last_analysis_date": None,
        "is_manual": False,
        "order_ids": [],
        "total_spent": Decimal("0.00"),
    }


def build_directory():
    entries = {}
    for customer in Customer.objects.order_by("join_date"):
        entries[customer.contact_normalized] = _manual_entry(customer)

    orders = Order.objects.only(
        "id",
        "customer_name",
        "customer_contact",
        "secondary_contact",
        "customer_email",
        "total_amount",
        "status",
        "created_at",
    ).order_by("created_at")
    for order in orders:
        normalized = normalize_phone(order.customer_contact)
        entry = entries.get(normalized)
        if entry is None:
            entry = entries[normalized] = _derived_entry(order, normalized)
        entry["order_ids"].append(str(order.id))
        if order.status != OrderStatus.CANCELLED:
            entry["total_spent"] += order.total_amount
    return list(entries.values())


def get_directory():
    key = f"customers:directory:v{current_version()}"
    entries = cache.get(key)
    if entries is None:
        entries = build_directory()
        cache.set(key, entries, CACHE_TIMEOUT)
    return entries


def search_directory(query):
    entries = get_directory()
    query = str(query or "").strip()
    if not query:
        return entries
    lowered = query.lower()
    digits = normalize_phone(query) if any(ch.isdigit() for ch in query) else ""
    return [
        entry
        for entry in entries
        if lowered in entry["name"].lower()
        or lowered in entry["email"].lower()
        or (digits and digits in entry["contact_normalized"])
    ]


def find_customer(contact):
    normalized = normalize_phone(contact)
    for entry in get_directory():
        if entry["contact_normalized"] == normalized:
            return entry
    return None
