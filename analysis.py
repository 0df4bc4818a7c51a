"""
Global OSINT Dashboard — Pure analysis functions.

No Streamlit dependency. Every function is a pure function of the event list
and ``now``; nothing is cached between calls.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from config import (
    CONFLICT_KEYWORDS,
    COUNTRY_RISK_CAP,
    CYBER_KEYWORDS,
    ECONOMIC_KEYWORDS,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    PREDICTION_TIMEFRAMES,
    PRIMARY_THREAT_KEYWORDS,
    RECENCY_FLOOR,
    RECENCY_WINDOW_HOURS,
    SEVERITY_POINTS,
    THREAT_CATEGORIES,
    THREAT_MULTIPLIERS,
    THREAT_SCORE_CAP,
    TREND_CATEGORIES,
    TREND_STABLE_BAND,
)
from events import Event, hours_old, utcnow

logger = logging.getLogger(__name__)


def contains_any(text: str, keywords) -> bool:
    """True if any keyword is a substring of ``text`` (caller lower-cases)."""
    return any(k in text for k in keywords)


def count_hits(text: str, keywords) -> int:
    """Number of distinct keywords present in ``text``."""
    return sum(1 for k in keywords if k in text)


def _label(score: float) -> str:
    if score > 0.1:
        return "positive"
    if score < -0.1:
        return "negative"
    return "neutral"


# ═════════════════════════════════════════════════════════════════════════════
# SENTIMENT
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SentimentScore:
    score: float
    label: str
    confidence: float


@dataclass(frozen=True)
class SentimentSummary:
    positive: float
    negative: float
    neutral: float
    average_score: float
    average_confidence: float
    trend: str


def analyze_sentiment(text: str) -> SentimentScore:
    score = 0
    matches = 0
    for word in text.lower().split():
        # a word may hit both lexicons; each hit counts
        if contains_any(word, NEGATIVE_WORDS):
            score -= 1
            matches += 1
        if contains_any(word, POSITIVE_WORDS):
            score += 1
            matches += 1

    normalized = score / matches if matches > 0 else 0
    confidence = min(matches / 5, 1)
    return SentimentScore(
        score=normalized,
        label=_label(normalized),
        confidence=max(confidence, 0.3),
    )


def event_sentiment(event: Event) -> SentimentScore:
    return analyze_sentiment(f"{event.title} {event.description}")


def summarize_sentiment(events: list[Event]) -> SentimentSummary:
    """Label shares (percent), mean score, mean confidence (percent), trend."""
    if not events:
        return SentimentSummary(0.0, 0.0, 0.0, 0.0, 0.0, "neutral")

    scores = [event_sentiment(e) for e in events]
    total = len(scores)
    labels = Counter(s.label for s in scores)
    avg_score = sum(s.score for s in scores) / total
    avg_conf = sum(s.confidence for s in scores) / total
    return SentimentSummary(
        positive=labels["positive"] / total * 100,
        negative=labels["negative"] / total * 100,
        neutral=labels["neutral"] / total * 100,
        average_score=avg_score,
        average_confidence=avg_conf * 100,
        trend=_label(avg_score),
    )


# ═════════════════════════════════════════════════════════════════════════════
# THREAT
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RegionalRisk:
    region: str
    risk_score: float
    threat_count: int
    primary_threats: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ThreatAssessment:
    overall_risk: float
    critical_threats: int
    emerging_threats: int
    geopolitical_tension: float
    cyber_security: float
    economic_risk: float
    regional_risks: list[RegionalRisk]
    highest_threats: list[tuple[Event, float]]


def recency_factor(age_hours: float) -> float:
    """Linear decay over a week, never below the floor.

    Negative ages (future timestamps) are not clamped and give a factor above 1;
    ``threat_score`` still caps the result.
    """
    return max(RECENCY_FLOOR, 1 - age_hours / RECENCY_WINDOW_HOURS)


def threat_score(event: Event, now: datetime | None = None) -> float:
    now = now or utcnow()
    score = float(SEVERITY_POINTS[event.severity])
    content = event.text
    for keywords, multiplier in THREAT_MULTIPLIERS:
        if contains_any(content, keywords):
            score *= multiplier
    return min(score * recency_factor(hours_old(event, now)), THREAT_SCORE_CAP)


def country_risk(country: str, events: list[Event], now: datetime | None = None) -> float:
    """Mean threat score of one country's events, capped at 100 for display."""
    now = now or utcnow()
    scores = [threat_score(e, now) for e in events if e.location.country == country]
    if not scores:
        return 0.0
    return min(sum(scores) / len(scores), COUNTRY_RISK_CAP)


def _category_match(event: Event, category: str) -> bool:
    title_kws, desc_kws = THREAT_CATEGORIES[category]
    return (contains_any(event.title.lower(), title_kws)
            or contains_any(event.description.lower(), desc_kws))


def _category_mean(scored: list[tuple[Event, float]], category: str) -> float:
    subset = [s for e, s in scored if _category_match(e, category)]
    return sum(subset) / max(len(subset), 1)


def primary_threats(events: list[Event], limit: int = 3) -> list[str]:
    counts: Counter = Counter()
    for e in events:
        content = e.text
        for label, kws in PRIMARY_THREAT_KEYWORDS.items():
            if contains_any(content, kws):
                counts[label] += 1
    # most_common keeps first-seen order for ties
    return [label for label, _ in counts.most_common(limit)]


def regional_risks(events: list[Event], now: datetime | None = None) -> list[RegionalRisk]:
    now = now or utcnow()
    by_country = group_by_country(events)
    risks = [
        RegionalRisk(
            region=country,
            risk_score=country_risk(country, events, now),
            threat_count=len(country_events),
            primary_threats=primary_threats(country_events),
        )
        for country, country_events in by_country.items()
    ]
    return sorted(risks, key=lambda r: r.risk_score, reverse=True)


def assess_threats(events: list[Event], now: datetime | None = None) -> ThreatAssessment:
    now = now or utcnow()
    scored = [(e, threat_score(e, now)) for e in events]
    overall = sum(s for _, s in scored) / len(scored) if scored else 0.0
    highest = sorted(scored, key=lambda pair: pair[1], reverse=True)[:5]
    return ThreatAssessment(
        overall_risk=overall,
        critical_threats=sum(1 for _, s in scored if s > 100),
        emerging_threats=sum(1 for _, s in scored if 75 < s <= 100),
        geopolitical_tension=_category_mean(scored, "geopolitical"),
        cyber_security=_category_mean(scored, "cyber"),
        economic_risk=_category_mean(scored, "economic"),
        regional_risks=regional_risks(events, now)[:8],
        highest_threats=highest,
    )


def risk_level(score: float) -> str:
    if score > 80:
        return "CRITICAL"
    if score > 60:
        return "HIGH"
    if score > 40:
        return "MEDIUM"
    return "LOW"


# ═════════════════════════════════════════════════════════════════════════════
# REGIONAL AGGREGATION
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RegionSummary:
    country: str
    total: int
    critical: int
    high: int
    coordinates: tuple[float, float]
    risk_score: float


def group_by_country(events: list[Event]) -> dict[str, list[Event]]:
    groups: dict[str, list[Event]] = {}
    for e in events:
        groups.setdefault(e.location.country, []).append(e)
    return groups


def regional_breakdown(events: list[Event]) -> list[RegionSummary]:
    summaries = []
    for country, group in group_by_country(events).items():
        critical = sum(1 for e in group if e.severity == "critical")
        high = sum(1 for e in group if e.severity == "high")
        summaries.append(RegionSummary(
            country=country,
            total=len(group),
            critical=critical,
            high=high,
            coordinates=group[0].location.coordinates,
            risk_score=(critical * 3 + high * 2) / len(group),
        ))
    return sorted(summaries, key=lambda r: r.risk_score, reverse=True)


def hotspots(events: list[Event], limit: int = 5) -> tuple[list[RegionSummary], float]:
    """Top regions by weighted risk plus their mean risk (0 when empty)."""
    top = regional_breakdown(events)[:limit]
    avg = sum(r.risk_score for r in top) / len(top) if top else 0.0
    return top, avg


# ═════════════════════════════════════════════════════════════════════════════
# PREDICTIONS
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Prediction:
    id: str
    type: str
    confidence: int
    timeframe: str
    description: str
    indicators: list[str]
    region: str
    risk_level: str


def _keyword_score(events: list[Event], keywords) -> int:
    return sum(count_hits(e.text, keywords) for e in events)


def generate_predictions(events: list[Event]) -> list[Prediction]:
    predictions: list[Prediction] = []

    for country, group in group_by_country(events).items():
        critical = sum(1 for e in group if e.severity == "critical")
        conflict = _keyword_score(group, CONFLICT_KEYWORDS)
        cyber = _keyword_score(group, CYBER_KEYWORDS)
        economic = _keyword_score(group, ECONOMIC_KEYWORDS)

        if conflict > 2 or critical > 2:
            predictions.append(Prediction(
                id=f"conflict-{country}",
                type="escalation",
                confidence=min(85, 40 + conflict * 10 + critical * 15),
                timeframe=PREDICTION_TIMEFRAMES["escalation"],
                description=f"High probability of conflict escalation in {country}",
                indicators=["Multiple military events", "Critical severity alerts",
                            "Pattern recognition"],
                region=country,
                risk_level="critical" if conflict > 4 else "high",
            ))

        if cyber > 1:
            predictions.append(Prediction(
                id=f"cyber-{country}",
                type="cyber",
                confidence=min(90, 30 + cyber * 20),
                timeframe=PREDICTION_TIMEFRAMES["cyber"],
                description=f"Increased cyber activity expected in {country}",
                indicators=["Cyber event clusters", "Infrastructure targeting",
                            "Attack pattern analysis"],
                region=country,
                risk_level="high" if cyber > 3 else "medium",
            ))

        if economic > 1:
            predictions.append(Prediction(
                id=f"economic-{country}",
                type="economic",
                confidence=min(75, 25 + economic * 15),
                timeframe=PREDICTION_TIMEFRAMES["economic"],
                description=f"Economic instability indicators in {country}",
                indicators=["Economic event frequency", "Market volatility signals",
                            "Policy changes"],
                region=country,
                risk_level="medium" if economic > 2 else "low",
            ))

    global_critical = sum(1 for e in events if e.severity == "critical")
    if global_critical > 5:
        predictions.append(Prediction(
            id="global-stability",
            type="stability",
            confidence=min(80, 50 + global_critical * 5),
            timeframe=PREDICTION_TIMEFRAMES["stability"],
            description="Global stability concerns due to multiple critical events",
            indicators=["Critical event threshold", "Multi-region impact",
                        "Cascading effects model"],
            region="Global",
            risk_level="critical" if global_critical > 8 else "high",
        ))

    logger.debug("generate_predictions: %d events -> %d predictions", len(events), len(predictions))
    return sorted(predictions, key=lambda p: p.confidence, reverse=True)


# ═════════════════════════════════════════════════════════════════════════════
# TRENDS
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TrendAnalysis:
    category: str
    trend: str
    change_rate: float
    prediction: str
    confidence: float


def change_rate(current: int, previous: int) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 100.0 if current > 0 else 0.0


def trend_direction(rate: float) -> str:
    if abs(rate) < TREND_STABLE_BAND:
        return "stable"
    return "increasing" if rate > 0 else "decreasing"


def _category_count(events: list[Event], category: str) -> int:
    if category == "critical":
        return sum(1 for e in events if e.severity == "critical")
    keywords = TREND_CATEGORIES[category]
    return sum(1 for e in events if contains_any(e.text, keywords))


def analyze_trends(events: list[Event], now: datetime | None = None) -> list[TrendAnalysis]:
    now = now or utcnow()
    last_24h = [e for e in events if hours_old(e, now) < 24]
    prev_24h = [e for e in events if 24 <= hours_old(e, now) < 48]

    results = []
    for category in TREND_CATEGORIES:
        rate = change_rate(_category_count(last_24h, category),
                           _category_count(prev_24h, category))
        trend = trend_direction(rate)
        prediction = {
            "increasing": f"{category} events likely to continue rising",
            "decreasing": f"{category} events showing decline",
        }.get(trend, f"{category} events remaining stable")
        results.append(TrendAnalysis(
            category=category.capitalize(),
            trend=trend,
            change_rate=abs(rate),
            prediction=prediction,
            confidence=min(85, 60 + abs(rate)),
        ))
    return results


# ═════════════════════════════════════════════════════════════════════════════
# BRIEFING
# ═════════════════════════════════════════════════════════════════════════════

def generate_briefing(events: list[Event], now: datetime | None = None) -> str:
    now = now or utcnow()
    stamp = now.strftime("%d %B %Y, %H:%M UTC")
    critical = [e for e in events if e.severity == "critical"]
    countries = Counter(e.location.country for e in events).most_common(3)
    sources = Counter(e.source.name for e in events).most_common(3)
    sentiment = summarize_sentiment(events)
    threats = assess_threats(events, now)
    predictions = generate_predictions(events)

    brief = f"""# GLOBAL SITUATION REPORT
**Generated:** {stamp}
**Classification:** UNCLASSIFIED — PUBLIC SOURCES ONLY

---

## EXECUTIVE SUMMARY

A total of **{len(events)} events** were tracked across {len({e.location.country for e in events})} countries.
Of these, **{len(critical)} events** were assessed as CRITICAL severity.
Overall threat level: **{risk_level(threats.overall_risk)}** ({threats.overall_risk:.1f}).
Sentiment trend: **{sentiment.trend}** ({sentiment.negative:.0f}% negative).

Most active countries: {', '.join(c for c, _ in countries) if countries else 'N/A'}.
Primary sources: {', '.join(s for s, _ in sources) if sources else 'N/A'}.

---

## CRITICAL INCIDENTS

"""
    for e in sorted(critical, key=lambda x: x.timestamp, reverse=True)[:8]:
        brief += f"- **{e.timestamp:%Y-%m-%d %H:%M}** | {e.location.country} | {e.source.name}\n  {e.title}\n"
        if e.url:
            brief += f"  {e.url}\n"
        brief += "\n"

    brief += "---\n\n## OUTLOOK\n\n"
    if predictions:
        for p in predictions[:5]:
            brief += f"- **{p.region}** ({p.type}, {p.timeframe}): {p.description} — {p.confidence}% confidence, {p.risk_level} risk\n"
    else:
        brief += "No elevated-risk patterns detected.\n"

    brief += """
---

## METHODOLOGY

Scores are keyword heuristics over event titles and descriptions: severity base points,
keyword multipliers and a one-week recency decay for threat, lexicon matching for sentiment.
No machine-learning model is involved. Verify all incidents through primary sources before operational use.

---
*Global OSINT Dashboard*
"""
    return brief
