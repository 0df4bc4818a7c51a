"""
Global OSINT Dashboard — Constants & Configuration.

No external dependencies. Safe to import anywhere.
"""

SEVERITY_LEVELS: tuple[str, ...] = ("critical", "high", "medium", "low")
SOURCE_TYPES: tuple[str, ...] = ("news", "government", "social", "satellite")
TIME_RANGES: dict[str, float | None] = {
    "24h": 24.0,
    "7d":  7 * 24.0,
    "30d": 30 * 24.0,
    "all": None,
}

SEVERITY_POINTS: dict[str, int] = {
    "critical": 100,
    "high":     75,
    "medium":   50,
    "low":      25,
}

SEVERITY_COLORS: dict[str, str] = {
    "critical": "#ef4444",
    "high":     "#f97316",
    "medium":   "#eab308",
    "low":      "#22c55e",
}

# ── Sentiment lexicons (substring match against single words) ───────────────
NEGATIVE_WORDS: tuple[str, ...] = (
    "attack", "conflict", "war", "crisis", "threat", "violence", "terrorism",
    "instability", "breach", "hack", "cyber", "sanctions", "embargo", "riot",
    "protest", "unrest", "collapse", "failure", "invasion", "missile", "bomb",
)

POSITIVE_WORDS: tuple[str, ...] = (
    "peace", "agreement", "cooperation", "alliance", "treaty", "diplomatic",
    "resolution", "success", "growth", "stability", "progress", "development",
    "aid", "support", "collaboration", "partnership", "victory", "breakthrough",
)

# ── Threat scoring ────────────────────────────────────────────────────────────
# Applied in order; every matching group multiplies the running score.
THREAT_MULTIPLIERS: tuple[tuple[tuple[str, ...], float], ...] = (
    (("nuclear", "missile"),      1.5),
    (("cyber", "hack"),           1.3),
    (("terrorist", "attack"),     1.4),
    (("military", "invasion"),    1.3),
    (("economic", "sanctions"),   1.2),
    (("pandemic", "health"),      1.25),
)

THREAT_SCORE_CAP = 150.0
COUNTRY_RISK_CAP = 100.0
RECENCY_WINDOW_HOURS = 168.0
RECENCY_FLOOR = 0.5

# (title keywords, description keywords) per threat category
THREAT_CATEGORIES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "cyber":        (("cyber",),    ("hack", "breach")),
    "geopolitical": (("militar",),  ("conflict", "tension")),
    "economic":     (("economic",), ("sanction", "trade")),
}

PRIMARY_THREAT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Cyber":     ("cyber",),
    "Military":  ("militar", "conflict"),
    "Economic":  ("economic",),
    "Terrorism": ("terror",),
}

# ── Predictions ───────────────────────────────────────────────────────────────
CONFLICT_KEYWORDS: tuple[str, ...] = ("conflict", "military", "war", "invasion", "missile", "attack")
CYBER_KEYWORDS: tuple[str, ...] = ("cyber", "hack", "breach", "malware", "ransomware")
ECONOMIC_KEYWORDS: tuple[str, ...] = ("economic", "sanction", "trade", "inflation", "crisis")

PREDICTION_TIMEFRAMES: dict[str, str] = {
    "escalation": "24-72 hours",
    "cyber":      "6-24 hours",
    "economic":   "1-7 days",
    "stability":  "48-96 hours",
}

# ── Trends ────────────────────────────────────────────────────────────────────
# "critical" is counted by severity, everything else by keyword.
TREND_CATEGORIES: dict[str, tuple[str, ...]] = {
    "critical": (),
    "cyber":    ("cyber", "hack"),
    "military": ("military", "conflict"),
    "economic": ("economic", "sanction"),
}
TREND_STABLE_BAND = 10.0

# ── Regions ───────────────────────────────────────────────────────────────────
REGIONS: dict[str, str] = {
    "global":        "All Regions",
    "north-america": "North America",
    "south-america": "South America",
    "europe":        "Europe",
    "africa":        "Africa",
    "asia":          "Asia",
    "oceania":       "Oceania",
}

COUNTRY_REGIONS: dict[str, str] = {
    "united states": "north-america", "canada": "north-america", "mexico": "north-america",
    "cuba": "north-america", "haiti": "north-america", "guatemala": "north-america",
    "brazil": "south-america", "argentina": "south-america", "colombia": "south-america",
    "venezuela": "south-america", "peru": "south-america", "chile": "south-america",
    "ecuador": "south-america", "bolivia": "south-america",
    "russia": "europe", "ukraine": "europe", "germany": "europe", "france": "europe",
    "belgium": "europe", "united kingdom": "europe", "poland": "europe", "italy": "europe",
    "spain": "europe", "netherlands": "europe", "sweden": "europe", "finland": "europe",
    "serbia": "europe", "belarus": "europe",
    "egypt": "africa", "nigeria": "africa", "sudan": "africa", "ethiopia": "africa",
    "south africa": "africa", "kenya": "africa", "libya": "africa", "mali": "africa",
    "somalia": "africa", "niger": "africa",
    "china": "asia", "iran": "asia", "indonesia": "asia", "philippines": "asia",
    "india": "asia", "pakistan": "asia", "japan": "asia", "north korea": "asia",
    "south korea": "asia", "taiwan": "asia", "israel": "asia", "syria": "asia",
    "iraq": "asia", "yemen": "asia", "saudi arabia": "asia", "afghanistan": "asia",
    "turkey": "asia", "myanmar": "asia", "vietnam": "asia",
    "australia": "oceania", "new zealand": "oceania", "papua new guinea": "oceania",
    "fiji": "oceania",
}

# ── Automation ────────────────────────────────────────────────────────────────
CONDITION_TYPES: tuple[str, ...] = ("severity", "region", "keyword", "source", "count")
CONDITION_OPERATORS: tuple[str, ...] = ("equals", "contains", "greater_than", "less_than", "in")

PATTERN_CONFIDENCE_CAP = 95
PATTERN_CONFIDENCE_STEP = 5
PATTERN_ALERT_THRESHOLD = 80
INTELLIGENCE_EVENT_LIMIT = 5

AUTO_SCAN_INTERVAL_SECONDS = 10 * 60

# requests timeout=(connect, read)
WEBHOOK_TIMEOUT: tuple[float, float] = (3, 10)
WEBHOOK_MAX_WORKERS = 4

EXPORT_FORMATS: dict[str, str] = {
    "json": "application/json",
    "csv":  "text/csv",
    "md":   "text/markdown",
}
