"""
Global OSINT Dashboard — Event model, sample source, and filters.

No Streamlit dependency. Events are immutable; every filter returns a new list.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd

from config import COUNTRY_REGIONS, SEVERITY_LEVELS, SOURCE_TYPES, TIME_RANGES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Source:
    name: str
    type: str


@dataclass(frozen=True)
class Location:
    country: str
    coordinates: tuple[float, float]
    city: str | None = None


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    description: str
    severity: str
    source: Source
    location: Location
    timestamp: datetime
    tags: tuple[str, ...] = ()
    url: str | None = None

    @property
    def text(self) -> str:
        """Lower-cased title + description, the haystack for keyword checks."""
        return f"{self.title} {self.description}".lower()


@dataclass(frozen=True)
class FilterState:
    region: str = "global"
    severity: tuple[str, ...] = SEVERITY_LEVELS
    time_range: str = "24h"
    source_types: tuple[str, ...] = SOURCE_TYPES
    search_query: str = ""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def event_from_dict(raw: dict) -> Event:
    """Build an Event from a JSON-style dict. Raises ValueError on bad enums."""
    severity = str(raw.get("severity", "")).lower()
    if severity not in SEVERITY_LEVELS:
        raise ValueError(f"event {raw.get('id')!r}: unknown severity {severity!r}")

    src = raw.get("source") or {}
    src_type = str(src.get("type", "")).lower()
    if src_type not in SOURCE_TYPES:
        raise ValueError(f"event {raw.get('id')!r}: unknown source type {src_type!r}")

    loc = raw.get("location") or {}
    lat, lng = loc.get("coordinates", (0.0, 0.0))
    return Event(
        id=str(raw["id"]),
        title=raw.get("title", ""),
        description=raw.get("description", ""),
        severity=severity,
        source=Source(name=src.get("name", ""), type=src_type),
        location=Location(
            country=loc.get("country", ""),
            coordinates=(float(lat), float(lng)),
            city=loc.get("city"),
        ),
        timestamp=_parse_timestamp(raw["timestamp"]),
        tags=tuple(raw.get("tags", ())),
        url=raw.get("url"),
    )


def event_to_dict(event: Event) -> dict:
    loc = {"country": event.location.country, "coordinates": list(event.location.coordinates)}
    if event.location.city:
        loc["city"] = event.location.city
    return {
        "id":          event.id,
        "title":       event.title,
        "description": event.description,
        "severity":    event.severity,
        "source":      {"name": event.source.name, "type": event.source.type},
        "location":    loc,
        "timestamp":   event.timestamp.isoformat(),
        "tags":        list(event.tags),
        "url":         event.url,
    }


def load_events(source) -> list[Event]:
    """Read a JSON array of events from a path or a binary/text file object.

    Raises ValueError if the document is not a JSON array or an event is invalid.
    """
    if hasattr(source, "read"):
        content = source.read()
        name = getattr(source, "name", "upload")
    else:
        content = Path(source).read_text(encoding="utf-8")
        name = str(source)
    if isinstance(content, bytes):
        content = content.decode("utf-8")

    raw = json.loads(content)
    if not isinstance(raw, list):
        raise ValueError(f"{name}: expected a JSON array of events")
    events = [event_from_dict(r) for r in raw]
    logger.info("Loaded %d events from %s", len(events), name)
    return events


# (id, title, description, severity, source, type, country, city, lat, lng, minutes ago, tags, url)
_SAMPLE_ROWS = [
    ("1", "Military buildup reported near Ukraine border",
     "Satellite imagery shows significant movement of Russian troops and equipment "
     "near the Ukrainian border, raising concerns...",
     "critical", "CNN", "news", "Russia", "Moscow", 55.7558, 37.6176, 15,
     ("military", "ukraine", "russia"), "https://cnn.com/example"),
    ("2", "Protests erupt in Tehran after economic sanctions",
     "Thousands gathered in central Tehran protesting rising food prices and economic "
     "hardship following new international sanctions...",
     "high", "Reuters", "news", "Iran", "Tehran", 35.6892, 51.3890, 42,
     ("protests", "economy", "sanctions"), "https://reuters.com/example"),
    ("3", "ASEAN summit concludes with trade agreement",
     "ASEAN members signed a new regional trade pact aimed at reducing tariffs and "
     "improving supply chain resilience in the region...",
     "medium", "BBC", "news", "Indonesia", "Jakarta", -6.2088, 106.8456, 60,
     ("trade", "asean", "diplomacy"), "https://bbc.com/example"),
    ("4", "Diplomatic meeting between US and China officials",
     "Senior US and Chinese officials met in Beijing to discuss climate cooperation and "
     "trade relations amid ongoing tensions...",
     "medium", "AP", "news", "China", "Beijing", 39.9042, 116.4074, 120,
     ("diplomacy", "us-china", "trade"), "https://apnews.com/example"),
    ("5", "Cybersecurity breach at European banking consortium",
     "A sophisticated cyber attack targeted multiple European banks, potentially "
     "compromising customer data and financial records...",
     "critical", "EU CERT", "government", "Germany", "Frankfurt", 50.1109, 8.6821, 180,
     ("cybersecurity", "banking", "europe"), "https://cert.europa.eu/example"),
    ("6", "Natural disaster response coordinated in Philippines",
     "International aid organizations coordinate relief efforts following devastating "
     "typhoon that affected millions in the archipelago...",
     "high", "UN OCHA", "government", "Philippines", "Manila", 14.5995, 120.9842, 240,
     ("disaster", "humanitarian", "typhoon"), "https://unocha.org/example"),
    ("7", "Energy crisis discussions in European Parliament",
     "EU lawmakers debate emergency measures to address rising energy costs and supply "
     "security concerns ahead of winter season...",
     "high", "Euronews", "news", "Belgium", "Brussels", 50.8503, 4.3517, 300,
     ("energy", "europe", "crisis"), "https://euronews.com/example"),
    ("8", "Trade route disruption in Red Sea region",
     "Commercial shipping reports delays and rerouting due to security concerns in "
     "critical maritime trade corridor...",
     "medium", "Lloyd's List", "news", "Egypt", "Suez", 29.9668, 32.5498, 360,
     ("shipping", "trade", "security"), "https://lloydslist.com/example"),
]


def sample_events(now: datetime | None = None) -> list[Event]:
    """The built-in demo event set, timestamped relative to ``now``."""
    now = now or utcnow()
    return [
        Event(
            id=eid, title=title, description=desc, severity=sev,
            source=Source(name=src, type=src_type),
            location=Location(country=country, coordinates=(lat, lng), city=city),
            timestamp=now - timedelta(minutes=minutes),
            tags=tags, url=url,
        )
        for (eid, title, desc, sev, src, src_type, country, city,
             lat, lng, minutes, tags, url) in _SAMPLE_ROWS
    ]


# ── Filters ───────────────────────────────────────────────────────────────────

def region_of(country: str) -> str | None:
    return COUNTRY_REGIONS.get(country.strip().lower())


def hours_old(event: Event, now: datetime) -> float:
    return (now - event.timestamp).total_seconds() / 3600.0


def search_events(events: list[Event], query: str) -> list[Event]:
    """Case-insensitive substring search across title, description, country and tags."""
    q = query.strip().lower()
    if not q:
        return list(events)
    return [
        e for e in events
        if q in e.title.lower()
        or q in e.description.lower()
        or q in e.location.country.lower()
        or any(q in t.lower() for t in e.tags)
    ]


def filter_events(events: list[Event], filters: FilterState, now: datetime | None = None) -> list[Event]:
    now = now or utcnow()
    if filters.time_range not in TIME_RANGES:
        raise ValueError(f"unknown time range {filters.time_range!r}")
    max_hours = TIME_RANGES[filters.time_range]

    kept = []
    for e in events:
        if e.severity not in filters.severity:
            continue
        if e.source.type not in filters.source_types:
            continue
        if max_hours is not None and hours_old(e, now) > max_hours:
            continue
        if filters.region != "global" and region_of(e.location.country) != filters.region:
            continue
        kept.append(e)

    result = search_events(kept, filters.search_query)
    logger.debug("filter_events: %d -> %d", len(events), len(result))
    return result


def sort_newest_first(events: list[Event]) -> list[Event]:
    return sorted(events, key=lambda e: e.timestamp, reverse=True)


def events_to_frame(events: list[Event]) -> pd.DataFrame:
    """Flat table of events for display, charts and CSV export."""
    columns = ["ID", "Severity", "Title", "Country", "City", "Source", "Source Type",
               "Published", "Tags", "Latitude", "Longitude", "Link", "Description"]
    rows = [{
        "ID":          e.id,
        "Severity":    e.severity,
        "Title":       e.title,
        "Country":     e.location.country,
        "City":        e.location.city or "",
        "Source":      e.source.name,
        "Source Type": e.source.type,
        "Published":   e.timestamp.strftime("%Y-%m-%d %H:%M"),
        "Tags":        "; ".join(e.tags),
        "Latitude":    e.location.coordinates[0],
        "Longitude":   e.location.coordinates[1],
        "Link":        e.url or "",
        "Description": e.description,
    } for e in events]
    return pd.DataFrame(rows, columns=columns)
