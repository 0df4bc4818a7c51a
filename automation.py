"""
Global OSINT Dashboard — Automation rules, webhooks and threat patterns.

The automation state is an immutable ``AutomationStore``. Every CRUD
operation is a pure function returning a new store; the Streamlit app keeps
the current snapshot in ``st.session_state`` and swaps it on each change.
No network I/O here; see delivery.py.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from config import (
    CONDITION_OPERATORS,
    CONDITION_TYPES,
    INTELLIGENCE_EVENT_LIMIT,
    PATTERN_ALERT_THRESHOLD,
    PATTERN_CONFIDENCE_CAP,
    PATTERN_CONFIDENCE_STEP,
)
from events import Event, event_to_dict, region_of, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutomationCondition:
    type: str
    operator: str
    value: Any

    def __post_init__(self):
        if self.type not in CONDITION_TYPES:
            raise ValueError(f"unknown condition type {self.type!r}")
        if self.operator not in CONDITION_OPERATORS:
            raise ValueError(f"unknown condition operator {self.operator!r}")

    def describe(self) -> str:
        value = ", ".join(map(str, self.value)) if isinstance(self.value, (list, tuple)) else self.value
        return f"{self.type} {self.operator.replace('_', ' ')} {value}"


@dataclass(frozen=True)
class Webhook:
    id: str
    name: str
    url: str
    created_at: datetime
    is_active: bool = True
    workflow_id: str | None = None
    description: str = ""
    tags: tuple[str, ...] = ()
    last_triggered: datetime | None = None
    trigger_count: int = 0


@dataclass(frozen=True)
class AutomationRule:
    id: str
    name: str
    webhook_id: str
    conditions: tuple[AutomationCondition, ...]
    created_at: datetime
    is_active: bool = True
    description: str = ""
    last_triggered: datetime | None = None
    trigger_count: int = 0


@dataclass(frozen=True)
class ThreatPattern:
    id: str
    name: str
    description: str
    conditions: tuple[AutomationCondition, ...]
    severity: str
    confidence: int
    last_detected: datetime | None = None


@dataclass(frozen=True)
class WorkflowTrigger:
    webhook_id: str
    event_data: dict
    timestamp: datetime
    success: bool
    error: str | None = None
    response_ms: float | None = None


@dataclass(frozen=True)
class AutomationStore:
    webhooks: tuple[Webhook, ...] = ()
    rules: tuple[AutomationRule, ...] = ()
    patterns: tuple[ThreatPattern, ...] = ()
    triggers: tuple[WorkflowTrigger, ...] = ()

    def webhook(self, webhook_id: str) -> Webhook | None:
        return next((w for w in self.webhooks if w.id == webhook_id), None)

    def rule(self, rule_id: str) -> AutomationRule | None:
        return next((r for r in self.rules if r.id == rule_id), None)


@dataclass(frozen=True)
class AutomationMetrics:
    total_webhooks: int
    active_webhooks: int
    total_triggers: int
    today_triggers: int
    success_rate: float
    avg_response_ms: float


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


# ═════════════════════════════════════════════════════════════════════════════
# CONDITION EVALUATION
# ═════════════════════════════════════════════════════════════════════════════

def _as_list(value) -> list:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def _norm(value) -> str:
    return str(value).strip().lower()


def _compare_numeric(actual: int, operator: str, value) -> bool:
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        return False
    if operator == "greater_than":
        return actual > threshold
    if operator == "less_than":
        return actual < threshold
    return actual == threshold


def _field_values(condition_type: str, event: Event) -> list[str]:
    """Lower-cased values a text condition is compared against."""
    if condition_type == "severity":
        return [event.severity]
    if condition_type == "region":
        return [region_of(event.location.country) or "", event.location.country.lower()]
    return [event.source.type, event.source.name.lower()]


def condition_matches(condition: AutomationCondition, event: Event, count: int = 1) -> bool:
    """Evaluate one condition against one event.

    ``count`` is the size of the event set under evaluation and is only read by
    ``count`` conditions. Numeric operators on text fields never match. Region
    conditions accept a region slug or a country name; ``global`` matches all.
    Source conditions accept a source type or a source name.
    """
    op, value = condition.operator, condition.value

    if condition.type == "count":
        if op == "contains":
            return False
        if op == "in":
            return any(_compare_numeric(count, "equals", v) for v in _as_list(value))
        return _compare_numeric(count, op, value)

    if op in ("greater_than", "less_than"):
        return False

    wanted = [_norm(v) for v in _as_list(value)] if op == "in" else [_norm(value)]

    if condition.type == "keyword":
        text = event.text
        return any(w in text for w in wanted)

    if condition.type == "region" and "global" in wanted:
        return True

    actual = _field_values(condition.type, event)
    if op == "contains":
        return any(wanted[0] in a for a in actual)
    return any(w in actual for w in wanted)


def _split_conditions(conditions):
    per_event = [c for c in conditions if c.type != "count"]
    per_set = [c for c in conditions if c.type == "count"]
    return per_event, per_set


def matching_events(conditions, events: list[Event]) -> list[Event]:
    """Events satisfying every per-event condition, or [] if a count condition fails."""
    if not conditions:
        return []
    per_event, per_set = _split_conditions(conditions)
    matched = [e for e in events if all(condition_matches(c, e) for c in per_event)]
    if not matched:
        return []
    if all(condition_matches(c, matched[0], count=len(matched)) for c in per_set):
        return matched
    return []


def rule_matches(rule: AutomationRule, event: Event) -> bool:
    """Per-event check: every non-count condition holds for ``event``.

    Count conditions describe an event set, not a single event, and are skipped
    here; ``matching_events`` applies them.
    """
    if not rule.is_active or not rule.conditions:
        return False
    per_event, _ = _split_conditions(rule.conditions)
    return all(condition_matches(c, event) for c in per_event)


def evaluate_rules(store: AutomationStore, events: list[Event]) -> list[tuple[AutomationRule, Webhook, list[Event]]]:
    """Every active rule with an active webhook and at least one matching event.

    Rules are independent; the same event may fire several rules.
    """
    fired = []
    for rule in store.rules:
        if not rule.is_active:
            continue
        webhook = store.webhook(rule.webhook_id)
        if webhook is None or not webhook.is_active:
            logger.debug("rule %s skipped: webhook %s missing or inactive", rule.id, rule.webhook_id)
            continue
        matched = matching_events(rule.conditions, events)
        if matched:
            fired.append((rule, webhook, matched))
    logger.debug("evaluate_rules: %d of %d rules fired", len(fired), len(store.rules))
    return fired


# ═════════════════════════════════════════════════════════════════════════════
# STORE TRANSITIONS
# ═════════════════════════════════════════════════════════════════════════════

def _replace_item(items, item_id, **changes):
    if not any(i.id == item_id for i in items):
        raise KeyError(item_id)
    return tuple(replace(i, **changes) if i.id == item_id else i for i in items)


def add_webhook(store: AutomationStore, name: str, url: str, description: str = "",
                tags: str | list[str] = "", now: datetime | None = None) -> AutomationStore:
    if not name.strip():
        raise ValueError("webhook name is required")
    if not url.strip().startswith(("http://", "https://")):
        raise ValueError(f"webhook URL must be http(s): {url!r}")
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",")]
    webhook = Webhook(
        id=_new_id(),
        name=name.strip(),
        url=url.strip(),
        description=description,
        tags=tuple(t for t in tags if t),
        created_at=now or utcnow(),
    )
    logger.info("Webhook created: %s", webhook.name)
    return replace(store, webhooks=store.webhooks + (webhook,))


def update_webhook(store: AutomationStore, webhook_id: str, **changes) -> AutomationStore:
    return replace(store, webhooks=_replace_item(store.webhooks, webhook_id, **changes))


def toggle_webhook(store: AutomationStore, webhook_id: str) -> AutomationStore:
    current = store.webhook(webhook_id)
    if current is None:
        raise KeyError(webhook_id)
    return update_webhook(store, webhook_id, is_active=not current.is_active)


def delete_webhook(store: AutomationStore, webhook_id: str) -> AutomationStore:
    return replace(store, webhooks=tuple(w for w in store.webhooks if w.id != webhook_id))


def add_rule(store: AutomationStore, name: str, webhook_id: str, conditions,
             description: str = "", now: datetime | None = None) -> AutomationStore:
    if not name.strip():
        raise ValueError("rule name is required")
    if not conditions:
        raise ValueError("rule needs at least one condition")
    if store.webhook(webhook_id) is None:
        raise ValueError(f"unknown webhook {webhook_id!r}")
    rule = AutomationRule(
        id=_new_id(),
        name=name.strip(),
        webhook_id=webhook_id,
        conditions=tuple(conditions),
        description=description,
        created_at=now or utcnow(),
    )
    logger.info("Rule created: %s (%d conditions)", rule.name, len(rule.conditions))
    return replace(store, rules=store.rules + (rule,))


def toggle_rule(store: AutomationStore, rule_id: str) -> AutomationStore:
    current = store.rule(rule_id)
    if current is None:
        raise KeyError(rule_id)
    return replace(store, rules=_replace_item(store.rules, rule_id, is_active=not current.is_active))


def delete_rule(store: AutomationStore, rule_id: str) -> AutomationStore:
    return replace(store, rules=tuple(r for r in store.rules if r.id != rule_id))


def record_trigger(store: AutomationStore, trigger: WorkflowTrigger,
                   rule_id: str | None = None) -> AutomationStore:
    """Append a delivery attempt to history.

    Every attempt lands in ``triggers``; webhook and rule counters and
    ``last_triggered`` only move on a successful delivery.
    """
    if not trigger.success:
        return replace(store, triggers=store.triggers + (trigger,))

    webhooks = store.webhooks
    if store.webhook(trigger.webhook_id) is not None:
        hook = store.webhook(trigger.webhook_id)
        webhooks = _replace_item(webhooks, hook.id, last_triggered=trigger.timestamp,
                                 trigger_count=hook.trigger_count + 1)
    rules = store.rules
    if rule_id is not None and store.rule(rule_id) is not None:
        rule = store.rule(rule_id)
        rules = _replace_item(rules, rule_id, last_triggered=trigger.timestamp,
                              trigger_count=rule.trigger_count + 1)
    return replace(store, webhooks=webhooks, rules=rules, triggers=store.triggers + (trigger,))


def update_patterns(store: AutomationStore, patterns) -> AutomationStore:
    return replace(store, patterns=tuple(patterns))


# ═════════════════════════════════════════════════════════════════════════════
# THREAT PATTERNS
# ═════════════════════════════════════════════════════════════════════════════

def scan_patterns(patterns, events: list[Event], now: datetime | None = None) -> list[ThreatPattern]:
    now = now or utcnow()
    updated = []
    for pattern in patterns:
        hits = len(matching_events(pattern.conditions, events))
        updated.append(replace(
            pattern,
            confidence=min(PATTERN_CONFIDENCE_CAP,
                           pattern.confidence + hits * PATTERN_CONFIDENCE_STEP),
            last_detected=now if hits > 0 else pattern.last_detected,
        ))
        logger.debug("pattern %s: %d matching events", pattern.name, hits)
    return updated


def alertable_patterns(patterns) -> list[ThreatPattern]:
    return [p for p in patterns
            if p.confidence > PATTERN_ALERT_THRESHOLD and p.last_detected is not None]


def pattern_status(confidence: int) -> str:
    if confidence >= 80:
        return "Critical"
    if confidence >= 60:
        return "Warning"
    return "Monitoring"


# ═════════════════════════════════════════════════════════════════════════════
# PAYLOADS & METRICS
# ═════════════════════════════════════════════════════════════════════════════

def build_test_payload(now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "test": True,
        "timestamp": now.isoformat(),
        "event": {
            "id": "test_event",
            "title": "Test Event from OSINT Dashboard",
            "severity": "medium",
            "location": {"country": "Test Country", "city": "Test City"},
            "description": "This is a test webhook trigger from the dashboard",
        },
    }


def build_intelligence_payload(pattern: ThreatPattern, events: list[Event], now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "intelligence_alert": True,
        "pattern": {
            "name": pattern.name,
            "description": pattern.description,
            "severity": pattern.severity,
            "confidence": pattern.confidence,
        },
        "timestamp": now.isoformat(),
        "events": [event_to_dict(e) for e in events[:INTELLIGENCE_EVENT_LIMIT]],
        "analysis": {
            "threat_level": pattern.severity,
            "confidence_score": pattern.confidence,
            "recommendation": ("Immediate action required" if pattern.severity == "critical"
                               else "Monitor closely"),
        },
    }


def build_rule_payload(rule: AutomationRule, events: list[Event], now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "intelligence_alert": False,
        "rule": {"id": rule.id, "name": rule.name,
                 "conditions": [c.describe() for c in rule.conditions]},
        "event": event_to_dict(events[0]) if events else None,
        "timestamp": now.isoformat(),
        "events": [event_to_dict(e) for e in events],
        "analysis": {
            "matched_events": len(events),
            "critical_events": sum(1 for e in events if e.severity == "critical"),
        },
    }


def automation_metrics(store: AutomationStore, now: datetime | None = None) -> AutomationMetrics:
    now = now or utcnow()
    today = now.astimezone(timezone.utc).date()
    history = store.triggers
    timed = [t.response_ms for t in history if t.response_ms is not None]
    return AutomationMetrics(
        total_webhooks=len(store.webhooks),
        active_webhooks=sum(1 for w in store.webhooks if w.is_active),
        total_triggers=sum(w.trigger_count for w in store.webhooks),
        today_triggers=sum(1 for t in history if t.timestamp.astimezone(timezone.utc).date() == today),
        success_rate=(sum(1 for t in history if t.success) / len(history) * 100) if history else 0.0,
        avg_response_ms=sum(timed) / len(timed) if timed else 0.0,
    )


def default_store(now: datetime | None = None, webhook_url: str = "") -> AutomationStore:
    """Seed configuration shown on first load."""
    now = now or utcnow()
    webhooks = (
        Webhook(
            id="1", name="Critical Event Alert",
            url=webhook_url or "https://your-n8n.domain.com/webhook/critical-alerts",
            workflow_id="wf_001", description="Triggers when critical events are detected",
            tags=("alerts", "critical"), created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        ),
        Webhook(
            id="2", name="Daily Intelligence Report",
            url="https://your-n8n.domain.com/webhook/daily-report",
            workflow_id="wf_002", description="Generates automated daily intelligence reports",
            tags=("reports", "daily"), created_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        ),
    )
    rules = (
        AutomationRule(
            id="1", name="Critical Event Immediate Alert", webhook_id="1",
            conditions=(AutomationCondition("severity", "equals", "critical"),),
            description="Trigger instant notification for all critical events",
            created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        ),
        AutomationRule(
            id="2", name="Regional High-Threat Analysis", webhook_id="2",
            conditions=(
                AutomationCondition("severity", "in", ["critical", "high"]),
                AutomationCondition("region", "equals", "europe"),
            ),
            description="Automated analysis for high-threat events in Europe",
            created_at=datetime(2024, 1, 12, tzinfo=timezone.utc),
        ),
    )
    patterns = (
        ThreatPattern(
            id="1", name="Coordinated Cyber Attacks",
            description="Multiple cyber incidents in related infrastructure sectors",
            conditions=(AutomationCondition("keyword", "contains", "cyber"),
                        AutomationCondition("severity", "equals", "critical")),
            severity="critical", confidence=87, last_detected=now - timedelta(hours=2),
        ),
        ThreatPattern(
            id="2", name="Regional Political Escalation",
            description="Increasing political tension in geographic region",
            conditions=(AutomationCondition("severity", "equals", "high"),
                        AutomationCondition("region", "equals", "europe"),
                        AutomationCondition("count", "greater_than", 3)),
            severity="high", confidence=74, last_detected=now - timedelta(minutes=45),
        ),
        ThreatPattern(
            id="3", name="Economic Warfare Indicators",
            description="Patterns suggesting economic warfare or sanctions",
            conditions=(AutomationCondition("keyword", "contains", "sanction"),
                        AutomationCondition("keyword", "contains", "economic"),
                        AutomationCondition("keyword", "in", ["trade", "embargo", "tariff"])),
            severity="medium", confidence=62,
        ),
    )
    return AutomationStore(webhooks=webhooks, rules=rules, patterns=patterns)
