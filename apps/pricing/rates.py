import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from apps.audit.models import ErrorSeverity
from apps.audit.services import record_error
from apps.common.money import quantize, round_units
from apps.pricing.models import DEFAULT_RATE_22K, DEFAULT_RATE_24K, StoreSettings

logger = logging.getLogger(__name__)

RATE_CACHE_KEY = "gold-rate:latest"
PURITY_22K_FACTOR = Decimal("0.916")


@dataclass(frozen=True)
class RateResult:
    rate_24k: Decimal
    rate_22k: Decimal
    success: bool
    error: str = ""
    source: str = ""


def _parse_feed(payload):
    try:
        rate_obj = payload["data"][0][0]
    except (KeyError, IndexError, TypeError):
        raise ValueError("Data format mismatch")
    raw_rate = rate_obj.get("gSell") or rate_obj.get("gBuy")
    if not raw_rate:
        raise ValueError("Data format mismatch")
    try:
        rate_24k = quantize(Decimal(str(raw_rate)))
    except InvalidOperation:
        raise ValueError("Invalid rate value")
    if rate_24k <= 0:
        raise ValueError("Invalid rate value")
    return rate_24k, round_units(rate_24k * PURITY_22K_FACTOR)


def fetch_live_rate(force_refresh=False):
    """Return the current 24K/22K per-gram rates.

    A cached value younger than ``GOLD_RATE_CACHE_SECONDS`` wins unless
    ``force_refresh``. Feed failures fall back to the last cached value
    (stale) and then to the built-in defaults with ``success=False``.
    """
    cached = cache.get(RATE_CACHE_KEY)
    if cached and not force_refresh and time.time() - cached["timestamp"] < settings.GOLD_RATE_CACHE_SECONDS:
        return RateResult(cached["rate_24k"], cached["rate_22k"], success=True, source="Cache")

    try:
        response = requests.get(settings.GOLD_RATE_SOURCE_URL, timeout=settings.GOLD_RATE_REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        rate_24k, rate_22k = _parse_feed(response.json())
    except (requests.exceptions.RequestException, ValueError) as exc:
        logger.warning("Gold rate sync failed: %s", exc)
        record_error("Gold Rate Feed", f"Gold rate sync failed: {exc}", ErrorSeverity.LOW)
        if cached:
            return RateResult(cached["rate_24k"], cached["rate_22k"], success=True, source="Offline Cache (Stale)")
        return RateResult(DEFAULT_RATE_24K, DEFAULT_RATE_22K, success=False, error=str(exc))

    cache.set(RATE_CACHE_KEY, {"rate_24k": rate_24k, "rate_22k": rate_22k, "timestamp": time.time()}, timeout=None)
    return RateResult(rate_24k, rate_22k, success=True, source="Augmont")


def refresh_store_rates(force_refresh=True):
    result = fetch_live_rate(force_refresh=force_refresh)
    if result.success:
        store = StoreSettings.load()
        store.current_gold_rate_24k = result.rate_24k
        store.current_gold_rate_22k = result.rate_22k
        store.rate_updated_at = timezone.now()
        store.save(update_fields=["current_gold_rate_24k", "current_gold_rate_22k", "rate_updated_at", "updated_at"])
    return result
