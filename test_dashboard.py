"""
Tests for the Global OSINT Dashboard — config, events, analysis, and export.

Run:  pytest test_dashboard.py -v
"""

import io
import json
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

# ── config.py has zero dependencies — import directly ────────────────────────
from config import (
    COUNTRY_REGIONS,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    REGIONS,
    SEVERITY_LEVELS,
    SEVERITY_POINTS,
    THREAT_MULTIPLIERS,
)
from events import (
    Event,
    FilterState,
    Location,
    Source,
    event_from_dict,
    event_to_dict,
    events_to_frame,
    filter_events,
    load_events,
    sample_events,
    search_events,
    sort_newest_first,
)
from analysis import (
    analyze_sentiment,
    analyze_trends,
    assess_threats,
    change_rate,
    country_risk,
    generate_briefing,
    generate_predictions,
    hotspots,
    primary_threats,
    recency_factor,
    regional_breakdown,
    regional_risks,
    risk_level,
    summarize_sentiment,
    threat_score,
    trend_direction,
)
from export import ExportOptions, build_export, export_filename, render_export

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

_counter = iter(range(1, 100_000))


def make_event(title="Incident report", description="", severity="low", country="Germany",
               hours_ago=0.0, source_type="news", tags=()):
    return Event(
        id=str(next(_counter)),
        title=title,
        description=description,
        severity=severity,
        source=Source(name="Wire", type=source_type),
        location=Location(country=country, coordinates=(50.0, 8.0)),
        timestamp=NOW - timedelta(hours=hours_ago),
        tags=tuple(tags),
    )


@pytest.fixture
def samples():
    return sample_events(NOW)


# ═════════════════════════════════════════════════════════════════════════════
# CONSTANT / DATA-STRUCTURE VALIDATION
# ═════════════════════════════════════════════════════════════════════════════


class TestLexicons:
    def test_all_lowercase(self):
        for w in NEGATIVE_WORDS + POSITIVE_WORDS:
            assert w == w.lower(), f"lexicon word '{w}' is not lowercase"

    def test_no_overlap(self):
        overlap = set(NEGATIVE_WORDS) & set(POSITIVE_WORDS)
        assert not overlap, f"Overlap between lexicons: {overlap}"


class TestSeverityPoints:
    def test_every_level_scored(self):
        assert set(SEVERITY_POINTS) == set(SEVERITY_LEVELS)

    def test_points_are_ordered(self):
        points = [SEVERITY_POINTS[s] for s in SEVERITY_LEVELS]
        assert points == sorted(points, reverse=True)

    def test_multipliers_boost(self):
        for keywords, mult in THREAT_MULTIPLIERS:
            assert keywords
            assert mult > 1


class TestRegions:
    def test_country_regions_are_known(self):
        for country, region in COUNTRY_REGIONS.items():
            assert country == country.lower()
            assert region in REGIONS and region != "global"

    def test_sample_countries_mapped(self, samples):
        for e in samples:
            assert e.location.country.lower() in COUNTRY_REGIONS


# ═════════════════════════════════════════════════════════════════════════════
# EVENTS & FILTERS
# ═════════════════════════════════════════════════════════════════════════════


class TestEventParsing:
    def test_parses_iso_z_timestamp(self):
        raw = {
            "id": 7, "title": "T", "description": "D", "severity": "HIGH",
            "source": {"name": "AP", "type": "news"},
            "location": {"country": "Iran", "coordinates": [35.6, 51.3]},
            "timestamp": "2026-03-01T10:00:00Z", "tags": ["a"],
        }
        e = event_from_dict(raw)
        assert e.id == "7"
        assert e.severity == "high"
        assert e.timestamp == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
        assert e.location.coordinates == (35.6, 51.3)
        assert e.location.city is None

    def test_unknown_severity_rejected(self):
        raw = {"id": "1", "severity": "extreme", "source": {"type": "news"},
               "timestamp": "2026-03-01T10:00:00"}
        with pytest.raises(ValueError):
            event_from_dict(raw)

    def test_unknown_source_type_rejected(self):
        raw = {"id": "1", "severity": "low", "source": {"type": "radio"},
               "timestamp": "2026-03-01T10:00:00"}
        with pytest.raises(ValueError):
            event_from_dict(raw)

    def test_to_dict_is_json_safe(self, samples):
        data = event_to_dict(samples[0])
        assert json.loads(json.dumps(data))["location"]["city"] == "Moscow"


class TestLoadEvents:
    def test_from_path(self, tmp_path, samples):
        path = tmp_path / "events.json"
        path.write_text(json.dumps([event_to_dict(e) for e in samples]), encoding="utf-8")
        loaded = load_events(path)
        assert loaded == samples

    def test_from_uploaded_bytes(self, samples):
        buf = io.BytesIO(json.dumps([event_to_dict(samples[0])]).encode("utf-8"))
        [e] = load_events(buf)
        assert e.title == samples[0].title
        assert e.location.city == "Moscow"

    def test_rejects_non_array(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text('{"id": "1"}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_events(path)

    def test_rejects_bad_event(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps([{"id": "1", "severity": "extreme", "source": {"type": "news"},
                                     "timestamp": "2026-03-01T10:00:00Z"}]), encoding="utf-8")
        with pytest.raises(ValueError):
            load_events(path)


class TestSampleEvents:
    def test_eight_events(self, samples):
        assert len(samples) == 8

    def test_relative_to_now(self, samples):
        assert samples[0].timestamp == NOW - timedelta(minutes=15)
        assert all(e.timestamp <= NOW for e in samples)


class TestFilterEvents:
    def test_default_filters_keep_recent(self, samples):
        assert len(filter_events(samples, FilterState(), NOW)) == 8

    def test_severity_filter(self, samples):
        kept = filter_events(samples, FilterState(severity=("critical",)), NOW)
        assert {e.id for e in kept} == {"1", "5"}

    def test_source_type_filter(self, samples):
        kept = filter_events(samples, FilterState(source_types=("government",)), NOW)
        assert {e.id for e in kept} == {"5", "6"}

    def test_region_filter(self, samples):
        kept = filter_events(samples, FilterState(region="europe"), NOW)
        assert {e.location.country for e in kept} == {"Russia", "Germany", "Belgium"}

    def test_time_range_boundary_inclusive(self):
        edge = make_event(hours_ago=24)
        old = make_event(hours_ago=24.01)
        kept = filter_events([edge, old], FilterState(time_range="24h"), NOW)
        assert kept == [edge]

    def test_all_time_keeps_old(self):
        old = make_event(hours_ago=24 * 400)
        assert filter_events([old], FilterState(time_range="all"), NOW) == [old]

    def test_unknown_time_range(self, samples):
        with pytest.raises(ValueError):
            filter_events(samples, FilterState(time_range="90d"), NOW)

    def test_search_applied(self, samples):
        kept = filter_events(samples, FilterState(search_query="TRADE"), NOW)
        assert {e.id for e in kept} == {"3", "4", "8"}


class TestSearchEvents:
    def test_country_match(self, samples):
        assert [e.id for e in search_events(samples, "iran")] == ["2"]

    def test_tag_match(self):
        e = make_event(tags=["typhoon"])
        assert search_events([e], "Typhoon") == [e]

    def test_blank_query_returns_all(self, samples):
        assert len(search_events(samples, "  ")) == len(samples)


class TestFrame:
    def test_columns_and_rows(self, samples):
        df = events_to_frame(samples)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 8
        assert {"Severity", "Title", "Country", "Published"} <= set(df.columns)

    def test_empty(self):
        assert events_to_frame([]).empty

    def test_sort_newest_first(self):
        a, b = make_event(hours_ago=5), make_event(hours_ago=1)
        assert sort_newest_first([a, b]) == [b, a]


# ═════════════════════════════════════════════════════════════════════════════
# SENTIMENT
# ═════════════════════════════════════════════════════════════════════════════


class TestAnalyzeSentiment:
    def test_positive(self):
        s = analyze_sentiment("Peace agreement signed")
        assert s.score == 1
        assert s.label == "positive"
        assert s.confidence == pytest.approx(0.4)

    def test_negative_substring_match(self):
        s = analyze_sentiment("Warning issued")
        assert s.label == "negative"

    def test_empty_text(self):
        s = analyze_sentiment("")
        assert (s.score, s.label, s.confidence) == (0, "neutral", 0.3)

    def test_mixed_is_neutral(self):
        s = analyze_sentiment("war and peace")
        assert s.score == 0
        assert s.label == "neutral"

    def test_word_can_hit_both_lexicons(self):
        s = analyze_sentiment("cyberpeace")
        assert s.score == 0
        assert s.confidence == pytest.approx(0.4)

    def test_confidence_caps_at_one(self):
        s = analyze_sentiment("attack " * 7)
        assert s.score == -1
        assert s.confidence == 1

    def test_label_boundaries(self, samples):
        for e in samples:
            s = analyze_sentiment(f"{e.title} {e.description}")
            assert 0.3 <= s.confidence <= 1
            assert (s.label == "neutral") == (abs(s.score) <= 0.1)


class TestSummarizeSentiment:
    def test_shares_and_means(self):
        events = [
            make_event(title="Peace agreement"),
            make_event(title="Missile attack"),
            make_event(title="Weather report"),
        ]
        s = summarize_sentiment(events)
        assert s.positive == pytest.approx(100 / 3)
        assert s.negative == pytest.approx(100 / 3)
        assert s.neutral == pytest.approx(100 / 3)
        assert s.average_score == pytest.approx(0)
        assert s.average_confidence == pytest.approx(110 / 3)
        assert s.trend == "neutral"

    def test_empty(self):
        s = summarize_sentiment([])
        assert s.trend == "neutral"
        assert s.average_confidence == 0


# ═════════════════════════════════════════════════════════════════════════════
# THREAT
# ═════════════════════════════════════════════════════════════════════════════


class TestThreatScore:
    def test_nuclear_missile_hits_cap(self):
        e = make_event(title="Nuclear missile test", severity="critical")
        assert threat_score(e, NOW) == pytest.approx(150)

    def test_base_points_only(self):
        assert threat_score(make_event(title="Local election held"), NOW) == 25

    def test_multipliers_stack(self):
        e = make_event(title="cyber attack", severity="medium")
        assert threat_score(e, NOW) == pytest.approx(50 * 1.3 * 1.4)

    def test_hard_cap(self):
        e = make_event(title="nuclear cyber attack during military invasion", severity="critical")
        assert threat_score(e, NOW) == 150

    def test_half_decay_after_84h(self):
        assert threat_score(make_event(hours_ago=84), NOW) == pytest.approx(12.5)

    def test_decay_floor(self):
        assert threat_score(make_event(hours_ago=24 * 30), NOW) == pytest.approx(12.5)

    def test_future_event_boosted(self):
        assert threat_score(make_event(hours_ago=-10), NOW) == pytest.approx(25 * (1 + 10 / 168))

    def test_future_event_still_capped(self):
        e = make_event(title="Nuclear missile test", severity="critical", hours_ago=-48)
        assert threat_score(e, NOW) == 150

    def test_recency_monotonic(self):
        ages = [0, 1, 12, 48, 100, 168, 500]
        factors = [recency_factor(a) for a in ages]
        assert factors == sorted(factors, reverse=True)
        assert min(factors) == 0.5

    def test_bounds_on_samples(self, samples):
        for e in samples:
            assert 0 <= threat_score(e, NOW) <= 150


class TestCountryRisk:
    def test_capped_at_100(self):
        events = [make_event(title="missile strike", severity="critical", country="Iran")] * 2
        assert country_risk("Iran", events, NOW) == 100

    def test_unknown_country(self, samples):
        assert country_risk("Atlantis", samples, NOW) == 0


class TestPrimaryThreats:
    def test_top_three_by_frequency(self):
        events = [
            make_event(title="cyber attack"),
            make_event(title="cyber incident"),
            make_event(title="military conflict"),
            make_event(title="economic terror"),
        ]
        assert primary_threats(events) == ["Cyber", "Military", "Economic"]

    def test_none(self):
        assert primary_threats([make_event(title="Weather report")]) == []


class TestAssessThreats:
    def test_counts(self):
        events = [
            make_event(title="Nuclear missile test", severity="critical"),
            make_event(title="cyber attack", severity="medium"),
            make_event(title="Weather report"),
        ]
        t = assess_threats(events, NOW)
        assert t.critical_threats == 1
        assert t.emerging_threats == 1
        assert t.overall_risk == pytest.approx((150 + 91 + 25) / 3)
        assert t.highest_threats[0][1] == pytest.approx(150)

    def test_category_means(self):
        events = [
            make_event(title="Cyber outage", severity="high"),
            make_event(title="Port strike", description="trade halted", severity="low"),
        ]
        t = assess_threats(events, NOW)
        assert t.cyber_security == pytest.approx(75 * 1.3)
        assert t.economic_risk == pytest.approx(25)
        assert t.geopolitical_tension == 0

    def test_empty(self):
        t = assess_threats([], NOW)
        assert t.overall_risk == 0
        assert t.regional_risks == []
        assert t.highest_threats == []

    def test_regional_risks_sorted(self, samples):
        risks = regional_risks(samples, NOW)
        scores = [r.risk_score for r in risks]
        assert scores == sorted(scores, reverse=True)
        assert all(0 <= s <= 100 for s in scores)

    def test_idempotent(self, samples):
        assert assess_threats(samples, NOW) == assess_threats(samples, NOW)


class TestRiskLevel:
    @pytest.mark.parametrize("score,level", [
        (81, "CRITICAL"), (80, "HIGH"), (61, "HIGH"), (41, "MEDIUM"), (40, "LOW"), (0, "LOW"),
    ])
    def test_thresholds(self, score, level):
        assert risk_level(score) == level


# ═════════════════════════════════════════════════════════════════════════════
# REGIONAL AGGREGATION
# ═════════════════════════════════════════════════════════════════════════════


class TestRegionalBreakdown:
    def test_weighted_risk(self):
        events = (
            [make_event(severity="critical", country="Sudan")] * 3
            + [make_event(severity="high", country="Sudan")] * 2
            + [make_event(severity="low", country="Sudan")] * 5
        )
        [sudan] = regional_breakdown(events)
        assert (sudan.total, sudan.critical, sudan.high) == (10, 3, 2)
        assert sudan.risk_score == pytest.approx(1.3)

    def test_sorted_descending(self, samples):
        scores = [r.risk_score for r in regional_breakdown(samples)]
        assert scores == sorted(scores, reverse=True)

    def test_hotspots_empty(self):
        assert hotspots([]) == ([], 0.0)

    def test_hotspots_limit(self, samples):
        top, avg = hotspots(samples, limit=3)
        assert len(top) == 3
        assert avg == pytest.approx(sum(r.risk_score for r in top) / 3)


# ═════════════════════════════════════════════════════════════════════════════
# PREDICTIONS
# ═════════════════════════════════════════════════════════════════════════════


class TestGeneratePredictions:
    def test_global_stability(self):
        events = [make_event(severity="critical", country=f"C{i}") for i in range(9)]
        [p] = generate_predictions(events)
        assert p.id == "global-stability"
        assert p.type == "stability"
        assert p.confidence == 80
        assert p.risk_level == "critical"
        assert p.timeframe == "48-96 hours"

    def test_no_global_at_five(self):
        events = [make_event(severity="critical", country=f"C{i}") for i in range(5)]
        assert generate_predictions(events) == []

    def test_escalation(self):
        events = [make_event(title="military conflict", severity="high", country="Ukraine")] * 3
        [p] = generate_predictions(events)
        assert p.id == "conflict-Ukraine"
        assert p.confidence == 85
        assert p.risk_level == "critical"

    def test_escalation_from_critical_count(self):
        events = [make_event(severity="critical", country="Mali")] * 3
        [p] = generate_predictions(events)
        assert p.type == "escalation"
        assert p.confidence == 85
        assert p.risk_level == "high"

    def test_cyber(self):
        [p] = generate_predictions([make_event(title="ransomware breach hits hospital")])
        assert p.type == "cyber"
        assert p.confidence == 70
        assert p.risk_level == "medium"
        assert p.timeframe == "6-24 hours"

    def test_economic(self):
        [p] = generate_predictions([make_event(title="trade sanction")])
        assert p.type == "economic"
        assert p.confidence == 55
        assert p.risk_level == "low"

    def test_sorted_by_confidence(self):
        events = [
            make_event(title="trade sanction", country="A"),
            make_event(title="ransomware breach", country="B"),
        ]
        confidences = [p.confidence for p in generate_predictions(events)]
        assert confidences == sorted(confidences, reverse=True)


# ═════════════════════════════════════════════════════════════════════════════
# TRENDS
# ═════════════════════════════════════════════════════════════════════════════


class TestAnalyzeTrends:
    def _by_category(self, events):
        return {t.category: t for t in analyze_trends(events, NOW)}

    def test_categories(self):
        assert [t.category for t in analyze_trends([], NOW)] == [
            "Critical", "Cyber", "Military", "Economic"]

    def test_new_activity(self):
        events = [make_event(title="cyber incident", hours_ago=h) for h in (1, 2, 3, 4)]
        cyber = self._by_category(events)["Cyber"]
        assert cyber.change_rate == 100
        assert cyber.trend == "increasing"
        assert cyber.confidence == 85

    def test_decrease(self):
        events = [make_event(severity="critical", hours_ago=h) for h in (2, 30, 40)]
        critical = self._by_category(events)["Critical"]
        assert critical.trend == "decreasing"
        assert critical.change_rate == 50

    def test_stable_when_empty(self):
        t = self._by_category([])["Military"]
        assert (t.trend, t.change_rate, t.confidence) == ("stable", 0, 60)

    def test_window_edges(self):
        events = [make_event(title="economic", hours_ago=24), make_event(title="economic", hours_ago=48)]
        econ = self._by_category(events)["Economic"]
        # 24h lands in the previous window, 48h in neither
        assert econ.trend == "decreasing"
        assert econ.change_rate == 100

    def test_change_rate(self):
        assert change_rate(4, 0) == 100
        assert change_rate(0, 0) == 0
        assert change_rate(3, 2) == pytest.approx(50)

    @pytest.mark.parametrize("rate,trend", [
        (9.99, "stable"), (-9.99, "stable"), (10, "increasing"), (-10, "decreasing"),
    ])
    def test_direction(self, rate, trend):
        assert trend_direction(rate) == trend


# ═════════════════════════════════════════════════════════════════════════════
# BRIEFING & EXPORT
# ═════════════════════════════════════════════════════════════════════════════


class TestGenerateBriefing:
    def test_contains_sections(self, samples):
        brief = generate_briefing(samples, NOW)
        assert "GLOBAL SITUATION REPORT" in brief
        assert "8 events" in brief
        assert "METHODOLOGY" in brief

    def test_lists_critical_incidents(self, samples):
        brief = generate_briefing(samples, NOW)
        assert "Military buildup reported near Ukraine border" in brief
        assert "Cybersecurity breach at European banking consortium" in brief

    def test_empty(self):
        brief = generate_briefing([], NOW)
        assert "0 events" in brief
        assert "No elevated-risk patterns detected." in brief


class TestExport:
    def test_full_payload(self, samples):
        data = build_export(samples, ExportOptions(), NOW)
        assert data["metadata"]["totalEvents"] == 8
        assert len(data["events"]) == 8
        assert data["analytics"]["criticalEvents"] == 2
        assert data["analytics"]["regionDistribution"] == 8
        assert len(data["predictions"]["trends"]) == 4
        assert data["threatAssessment"]["criticalThreats"] >= 1

    def test_optional_sections(self, samples):
        opts = ExportOptions(include_analytics=False, include_threat_assessment=False,
                             include_predictions=False)
        data = build_export(samples, opts, NOW)
        assert data["analytics"] is None
        assert data["threatAssessment"] is None
        assert data["predictions"] is None

    def test_render_json(self, samples):
        data = build_export(samples, ExportOptions(), NOW)
        parsed = json.loads(render_export(data, samples, "json", NOW))
        assert parsed["metadata"]["generated"] == NOW.isoformat()

    def test_render_csv(self, samples):
        out = render_export({}, samples, "csv", NOW).decode("utf-8")
        assert out.splitlines()[0].startswith("ID,Severity,Title")
        assert len(out.strip().splitlines()) == 9

    def test_render_markdown(self, samples):
        out = render_export({}, samples, "md", NOW).decode("utf-8")
        assert "GLOBAL SITUATION REPORT" in out

    def test_unknown_format(self, samples):
        with pytest.raises(ValueError):
            render_export({}, samples, "pdf", NOW)

    def test_filename(self):
        assert export_filename("json", NOW) == "osint-report-2026-03-01.json"
