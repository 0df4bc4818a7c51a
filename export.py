"""
Global OSINT Dashboard — Export serialisation (JSON, CSV, Markdown).
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime

from analysis import (
    analyze_trends,
    assess_threats,
    generate_briefing,
    generate_predictions,
    summarize_sentiment,
)
from config import EXPORT_FORMATS
from events import Event, event_to_dict, events_to_frame, utcnow


@dataclass(frozen=True)
class ExportOptions:
    format: str = "json"
    include_analytics: bool = True
    include_threat_assessment: bool = True
    include_predictions: bool = True
    time_range: str = "24h"


def build_export(events: list[Event], options: ExportOptions, now: datetime | None = None) -> dict:
    now = now or utcnow()
    data = {
        "metadata": {
            "generated": now.isoformat(),
            "format": options.format,
            "totalEvents": len(events),
            "timeRange": options.time_range,
            "includesAnalytics": options.include_analytics,
            "includesThreatAssessment": options.include_threat_assessment,
            "includesPredictions": options.include_predictions,
        },
        "events": [event_to_dict(e) for e in events],
        "analytics": None,
        "threatAssessment": None,
        "predictions": None,
    }

    if options.include_analytics:
        data["analytics"] = {
            "totalEvents": len(events),
            "criticalEvents": sum(1 for e in events if e.severity == "critical"),
            "regionDistribution": len({e.location.country for e in events}),
            "sourceTypes": sorted({e.source.type for e in events}),
            "sentiment": asdict(summarize_sentiment(events)),
        }

    if options.include_threat_assessment:
        threats = assess_threats(events, now)
        data["threatAssessment"] = {
            "overallRisk": threats.overall_risk,
            "criticalThreats": threats.critical_threats,
            "emergingThreats": threats.emerging_threats,
            "geopoliticalTension": threats.geopolitical_tension,
            "cyberSecurity": threats.cyber_security,
            "economicRisk": threats.economic_risk,
            "regionalRisks": [asdict(r) for r in threats.regional_risks],
            "highestThreats": [{"id": e.id, "title": e.title, "threatScore": s}
                               for e, s in threats.highest_threats],
        }

    if options.include_predictions:
        data["predictions"] = {
            "patterns": [asdict(p) for p in generate_predictions(events)],
            "trends": [asdict(t) for t in analyze_trends(events, now)],
        }

    return data


def render_export(data: dict, events: list[Event], fmt: str, now: datetime | None = None) -> bytes:
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unsupported export format {fmt!r}")
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    if fmt == "csv":
        return events_to_frame(events).to_csv(index=False).encode("utf-8")
    return generate_briefing(events, now).encode("utf-8")


def export_filename(fmt: str, now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"osint-report-{now:%Y-%m-%d}.{fmt}"
