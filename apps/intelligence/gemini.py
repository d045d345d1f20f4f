"""
Gemini (Generative Language REST API) collaborator.
Every public function returns a fixed fallback instead of raising, so
callers never need their own error handling around AI calls.
"""
import json
import logging

import requests
from django.conf import settings
from django.utils import timezone

from apps.audit.models import ErrorSeverity
from apps.audit.services import record_audit, record_error
from apps.common.money import format_inr
from apps.orders.models import MilestoneStatus

logger = logging.getLogger(__name__)

ERROR_SOURCE = "GeminiService"
REMINDER_KINDS = ("UPCOMING", "OVERDUE", "SUCCESS")
RECENT_LOG_LIMIT = 15

ANALYSIS_FALLBACK = {
    "score": 50,
    "riskLevel": "MODERATE",
    "persona": "Unknown Entity",
    "communicationStrategy": "Maintain standard professional follow-ups.",
    "negotiationLeverage": "Standard terms.",
    "recommendedTone": "POLITE",
    "nextBestAction": "Manual Review",
}
DIAGNOSIS_FALLBACK = {
    "explanation": "Resolution Engine connectivity lost. Check API credentials in Settings.",
    "action": "NONE",
    "path": "settings",
    "cta": "Verify API Key",
    "suggestedFixData": None,
}
CHAT_FALLBACK = {"intent": "Unknown", "suggestedReply": "", "recommendedTemplateId": None, "tone": "Professional"}
NO_RISK_SUMMARY = "No collection risks currently."
EMPTY_RISK_SUMMARY = "Prioritize high-value overdue accounts."
RISK_FALLBACK = "Focus on the oldest overdue accounts first."


class GeminiError(Exception):
    pass


def _generate(prompt, json_mode=True):
    if not settings.GEMINI_API_KEY:
        raise GeminiError("Gemini API key is not configured")

    body = {"contents": [{"parts": [{"text": prompt}]}]}
    if json_mode:
        body["generationConfig"] = {"responseMimeType": "application/json"}
    try:
        response = requests.post(
            f"{settings.GEMINI_API_URL}/models/{settings.GEMINI_MODEL}:generateContent",
            params={"key": settings.GEMINI_API_KEY},
            json=body,
            timeout=settings.GEMINI_REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()["candidates"][0]["content"]["parts"][0]["text"] or ""
    except requests.exceptions.RequestException as exc:
        raise GeminiError(str(exc)) from exc
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise GeminiError(f"Unexpected response: {exc}") from exc


def _generate_json(prompt):
    text = _generate(prompt).replace("```json", "").replace("```", "").strip()
    try:
        data = json.loads(text or "{}")
    except ValueError as exc:
        raise GeminiError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GeminiError("Expected a JSON object")
    return data


def draft_reminder(order, kind, current_rate):
    """Collection message for ``order``; ``kind`` is UPCOMING, OVERDUE or SUCCESS."""
    balance = order.total_amount - order.total_paid
    prompt = (
        "Act as the 'Chief Collection Strategist' for AuraGold Luxury Jewelry.\n"
        f"Customer: {order.customer_name}\n"
        f"Balance Due: INR {format_inr(balance)}\n"
        f"Milestone Type: {kind}\n"
        f"Current 22K Gold Rate: INR {format_inr(current_rate)}/g\n"
        "Decide the psychological tone and write a WhatsApp message.\n"
        'Return JSON: { "tone": "POLITE" | "FIRM" | "URGENT_PANIC" | "ENCOURAGING_TRICK", '
        '"reasoning": "...", "message": "..." }'
    )
    try:
        data = _generate_json(prompt)
        if not data.get("message"):
            raise GeminiError("Draft is missing a message")
    except GeminiError as exc:
        record_error(ERROR_SOURCE, f"Strategy Generation Failed: {exc}", ErrorSeverity.MEDIUM)
        return {
            "tone": "POLITE",
            "reasoning": "Fallback due to AI error.",
            "message": f"Hello {order.customer_name}, just a reminder regarding your balance for your jewelry order.",
        }

    record_audit(
        action="STATUS_UPDATE",
        entity_type="order",
        entity_id=order.id,
        details=f"AI Strategy generated for {order.customer_name}",
        payload={"tone": data.get("tone")},
    )
    return {
        "tone": data.get("tone", "POLITE"),
        "reasoning": data.get("reasoning", ""),
        "message": data["message"],
    }


def reliability_digest(orders, now=None):
    """On-time share of milestones and average delay of the late ones."""
    today = timezone.localdate(now or timezone.now())
    total = late = delay_days = 0
    for order in orders:
        for milestone in order.plan.milestones.all():
            total += 1
            if milestone.status != MilestoneStatus.PAID and milestone.due_date < today:
                late += 1
                delay_days += (today - milestone.due_date).days
    return {
        "total_milestones": total,
        "late_milestones": late,
        "average_delay_days": round(delay_days / late) if late else 0,
        "payment_reliability": round((total - late) / total * 100, 1) if total else 100.0,
    }


def analyze_customer(customer, orders, logs):
    """Creditworthiness report for a directory entry (a dict)."""
    digest = reliability_digest(orders)
    history = "\n".join(
        f"[{log.direction.upper()}][{log.status}]: {log.message}" for log in list(logs)[:RECENT_LOG_LIMIT]
    )
    prompt = (
        "Act as a Senior Credit Risk & Behavioral Analyst for a Luxury Gold Jeweler.\n"
        f"Name: {customer['name']}\n"
        f"Total Spent: INR {format_inr(customer['total_spent'])}\n"
        f"Payment Reliability: {digest['payment_reliability']}% (Percentage of on-time milestones)\n"
        f"Avg Delay on Late Payments: {digest['average_delay_days']} days\n"
        f"Recent Communication History:\n{history}\n"
        "Calculate a credit score (0-100), assign a persona, define a negotiation strategy and the next best action.\n"
        'Return JSON: { "score": number, "riskLevel": "LOW" | "MODERATE" | "HIGH" | "CRITICAL", '
        '"persona": string, "communicationStrategy": string, "negotiationLeverage": string, '
        '"recommendedTone": "POLITE" | "FIRM" | "URGENT_PANIC" | "ENCOURAGING_TRICK", "nextBestAction": string }'
    )
    try:
        data = _generate_json(prompt)
        score = int(data["score"])
    except (GeminiError, KeyError, TypeError, ValueError) as exc:
        record_error(ERROR_SOURCE, f"Deep Analysis Failed: {exc}", ErrorSeverity.MEDIUM)
        return {**ANALYSIS_FALLBACK, "digest": digest, "fallback": True}

    report = {**ANALYSIS_FALLBACK, **data, "score": max(0, min(100, score))}
    report.update(digest=digest, fallback=False)
    return report


def collection_risk(overdue_orders):
    if not overdue_orders:
        return NO_RISK_SUMMARY
    summary = "\n".join(f"{order.customer_name}: Due INR {order.balance_due}" for order in overdue_orders)
    try:
        text = _generate(f"Analyze overdue orders and suggest recovery strategy:\n{summary}", json_mode=False)
    except GeminiError as exc:
        logger.warning("Collection risk analysis failed: %s", exc)
        return RISK_FALLBACK
    return text.strip() or EMPTY_RISK_SUMMARY


def diagnose_error(message, source):
    prompt = (
        "Analyze this AuraGold system error:\n"
        f'ERROR: "{message}"\nSOURCE: "{source}"\n'
        "Context:\n"
        "- 'settings': For API key (403), token, or gold rate issues.\n"
        "- 'templates': For WhatsApp template naming (132001), formatting, or rejection.\n"
        "- 'whatsapp': For general messaging failures.\n"
        'Return JSON: { "explanation": string, "action": "REPAIR_TEMPLATE" | "RETRY_API" | "CHECK_CREDENTIALS" | "NONE", '
        '"path": "settings" | "templates" | "whatsapp" | "waLogs" | "dashboard" | "none", "cta": string, '
        '"suggestedFixData": object }'
    )
    try:
        data = _generate_json(prompt)
    except GeminiError as exc:
        # Not routed through record_error: that would diagnose this failure again.
        record_audit(
            action="STATUS_UPDATE",
            entity_type="error",
            entity_id=source,
            details=f"Gemini Diagnosis Failed: {exc}",
        )
        return dict(DIAGNOSIS_FALLBACK)
    return {
        "explanation": data.get("explanation") or "Diagnostic incomplete.",
        "action": data.get("action") or "NONE",
        "path": data.get("path") or "none",
        "cta": data.get("cta") or "View Fix",
        "suggestedFixData": data.get("suggestedFixData"),
    }


def chat_insight(history, customer_name):
    transcript = "\n".join(f"[{log.direction}] {log.message}" for log in list(history)[:RECENT_LOG_LIMIT])
    prompt = (
        f"Analyze this WhatsApp chat with {customer_name} for a jewelry store.\n{transcript}\n"
        'Return JSON: { "intent": string, "suggestedReply": string, "recommendedTemplateId": string | null, "tone": string }'
    )
    try:
        data = _generate_json(prompt)
    except GeminiError as exc:
        logger.warning("Chat insight for %s failed: %s", customer_name, exc)
        return dict(CHAT_FALLBACK)
    return {**CHAT_FALLBACK, **data}


def reminder_kind(order, now=None):
    """UPCOMING unless a milestone is overdue; SUCCESS once fully paid."""
    if order.balance_due <= 0:
        return "SUCCESS"
    today = timezone.localdate(now or timezone.now())
    for milestone in order.plan.milestones.all():
        if milestone.status != MilestoneStatus.PAID and milestone.due_date < today:
            return "OVERDUE"
    return "UPCOMING"
