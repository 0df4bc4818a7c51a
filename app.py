"""
Global OSINT Dashboard
======================
Streamlit entrypoint. All business logic lives in config.py, events.py,
analysis.py, automation.py, delivery.py and export.py.

Run:
  streamlit run app.py
"""

import streamlit as st

# ─────────────────────────────────────────────────────────────────────────────
# PAGE CONFIG — must be the VERY FIRST Streamlit command, before anything else
# ─────────────────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Global OSINT Dashboard",
    page_icon="🌐",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Now safe to import everything else ────────────────────────────────────────
import logging
from datetime import datetime, timezone

import pandas as pd

from logging_config import setup_logging

setup_logging()
logger = logging.getLogger("app")

_import_errors: list[str] = []

try:
    import folium
    from streamlit_folium import st_folium
except ImportError as e:
    _import_errors.append(f"Map disabled: {e}")
    folium = None  # type: ignore[assignment]

try:
    import plotly.express as px
except ImportError as e:
    _import_errors.append(f"Charts disabled: {e}")
    px = None  # type: ignore[assignment]

try:
    from config import (
        AUTO_SCAN_INTERVAL_SECONDS,
        CONDITION_OPERATORS,
        CONDITION_TYPES,
        EXPORT_FORMATS,
        REGIONS,
        SEVERITY_COLORS,
        SEVERITY_LEVELS,
        SOURCE_TYPES,
        TIME_RANGES,
    )
    from events import (
        FilterState,
        events_to_frame,
        filter_events,
        load_events,
        sample_events,
        sort_newest_first,
    )
    from analysis import (
        analyze_trends,
        assess_threats,
        event_sentiment,
        generate_briefing,
        generate_predictions,
        hotspots,
        risk_level,
        summarize_sentiment,
        threat_score,
    )
    from automation import (
        AutomationCondition,
        add_rule,
        add_webhook,
        alertable_patterns,
        automation_metrics,
        build_intelligence_payload,
        build_rule_payload,
        build_test_payload,
        default_store,
        delete_rule,
        delete_webhook,
        evaluate_rules,
        pattern_status,
        record_trigger,
        scan_patterns,
        toggle_rule,
        toggle_webhook,
        update_patterns,
    )
    from delivery import deliver_many, dispatch_in_background
    from export import ExportOptions, build_export, export_filename, render_export
except ImportError as e:
    _import_errors.append(f"Analysis modules failed: {e}")
    st.error(_import_errors[-1])
    st.stop()

# ── Secrets (Streamlit Cloud) or fall back to defaults ────────────────────────
try:
    _secrets_webhook_url = st.secrets.get("N8N_WEBHOOK_URL", "")
except Exception:
    _secrets_webhook_url = ""

# ── Session state: events snapshot + automation store ─────────────────────────
if "events" not in st.session_state:
    st.session_state.events = sample_events()
if "store" not in st.session_state:
    st.session_state.store = default_store(webhook_url=_secrets_webhook_url)
if "new_conditions" not in st.session_state:
    st.session_state.new_conditions = []
if "pending_triggers" not in st.session_state:
    st.session_state.pending_triggers = []

# ─────────────────────────────────────────────────────────────────────────────
# CUSTOM CSS
# ─────────────────────────────────────────────────────────────────────────────
st.markdown("""
<style>
:root {
    --bg:        #0a0c10;
    --surface:   #111418;
    --border:    #1e2530;
    --accent:    #7fb3ff;
    --danger:    #ef4444;
    --warn:      #f97316;
    --caution:   #eab308;
    --ok:        #22c55e;
    --text:      #d4dbe8;
    --muted:     #6b7a94;
    --mono:      'IBM Plex Mono', ui-monospace, SFMono-Regular, monospace;
    --sans:      'IBM Plex Sans', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
}

html, body, [data-testid="stAppViewContainer"] {
    background-color: var(--bg) !important;
    color: var(--text) !important;
    font-family: var(--sans);
}
[data-testid="stSidebar"] {
    background-color: var(--surface) !important;
    border-right: 1px solid var(--border);
}
h1,h2,h3,h4 { font-family: var(--mono); color: var(--accent); letter-spacing: -0.5px; }
.stTabs [data-baseweb="tab-list"] { background: var(--surface); border-bottom: 1px solid var(--border); }
.stTabs [data-baseweb="tab"] { color: var(--muted); font-family: var(--mono); font-size: 0.8rem; }
.stTabs [aria-selected="true"] { color: var(--accent) !important; border-bottom: 2px solid var(--accent); }
.stMetric { background: var(--surface); border: 1px solid var(--border); border-radius: 4px; padding: 12px; }
[data-testid="stMetricValue"] { font-family: var(--mono); color: var(--accent); }
.severity-critical { color: var(--danger);  font-family: var(--mono); font-weight: 600; }
.severity-high     { color: var(--warn);    font-family: var(--mono); font-weight: 600; }
.severity-medium   { color: var(--caution); font-family: var(--mono); font-weight: 600; }
.severity-low      { color: var(--ok);      font-family: var(--mono); font-weight: 600; }
.tag { display: inline-block; padding: 1px 8px; border-radius: 2px; font-family: var(--mono);
       font-size: 0.72rem; margin: 1px; background: var(--border); color: var(--text); }
hr { border-color: var(--border); }
</style>
""", unsafe_allow_html=True)

if _import_errors:
    for err in _import_errors:
        st.error(err)

# ─────────────────────────────────────────────────────────────────────────────
# HEADER
# ─────────────────────────────────────────────────────────────────────────────
st.markdown("""
<div style='border-bottom:1px solid #1e2530; padding-bottom:1rem; margin-bottom:1.5rem;'>
  <span style='font-family:"IBM Plex Mono",monospace; font-size:0.7rem; color:#6b7a94; letter-spacing:2px;'>
    GEOPOLITICAL EVENTS · OPEN SOURCE INTELLIGENCE
  </span><br>
  <span style='font-family:"IBM Plex Mono",monospace; font-size:1.8rem; color:#7fb3ff; font-weight:600;'>
    🌐 GLOBAL OSINT DASHBOARD
  </span>
</div>
""", unsafe_allow_html=True)

SEV_ICON = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🟢"}

# ─────────────────────────────────────────────────────────────────────────────
# SIDEBAR
# ─────────────────────────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("### 🎚️ Filters")
    region = st.selectbox("Region", options=list(REGIONS), format_func=REGIONS.get)
    severity_filter = st.multiselect("Severity", list(SEVERITY_LEVELS), default=list(SEVERITY_LEVELS))
    time_range = st.selectbox("Time range", list(TIME_RANGES), index=0)
    source_filter = st.multiselect("Source types", list(SOURCE_TYPES), default=list(SOURCE_TYPES))
    search_query = st.text_input("🔎 Search events", "")

    st.divider()
    st.markdown("### 📂 Event source")
    uploaded = st.file_uploader("Events JSON", type=["json"],
                                help="JSON array of events; replaces the sample set")
    if uploaded is not None and st.session_state.get("loaded_file") != (uploaded.name, uploaded.size):
        try:
            st.session_state.events = load_events(uploaded)
            st.session_state.loaded_file = (uploaded.name, uploaded.size)
            st.toast(f"Loaded {len(st.session_state.events)} events from {uploaded.name}")
        except (ValueError, KeyError) as exc:
            st.error(f"Could not load {uploaded.name}: {exc}")

    if st.button("🔄 Reload sample events", use_container_width=True):
        st.session_state.events = sample_events()
        st.toast(f"Refreshed {len(st.session_state.events)} events")

filters = FilterState(
    region=region,
    severity=tuple(severity_filter),
    time_range=time_range,
    source_types=tuple(source_filter),
    search_query=search_query,
)
now = datetime.now(timezone.utc)
events = sort_newest_first(filter_events(st.session_state.events, filters, now))
df = events_to_frame(events)

# ─────────────────────────────────────────────────────────────────────────────
# KPI ROW
# ─────────────────────────────────────────────────────────────────────────────
threats = assess_threats(events, now)
k1, k2, k3, k4, k5 = st.columns(5)
k1.metric("Events", len(events))
k2.metric("🔴 Critical", sum(1 for e in events if e.severity == "critical"))
k3.metric("Countries", len({e.location.country for e in events}))
k4.metric("Overall Risk", f"{threats.overall_risk:.1f}", risk_level(threats.overall_risk))
k5.metric("Active Rules", sum(1 for r in st.session_state.store.rules if r.is_active))
st.divider()

# ─────────────────────────────────────────────────────────────────────────────
# TABS
# ─────────────────────────────────────────────────────────────────────────────
tabs = st.tabs([
    "📋 Feed",
    "🗺️ World Map",
    "🧠 Analytics",
    "⚡ Automation",
    "📄 Briefing",
    "📊 Raw Data",
    "⬇️ Export",
])
tab_feed, tab_map, tab_analytics, tab_auto, tab_brief, tab_raw, tab_export = tabs

# ── TAB 1: FEED ───────────────────────────────────────────────────────────────
with tab_feed:
    if not events:
        st.info("No events match your search criteria.")
    else:
        st.markdown(f"### 📰 {len(events)} events")
        for e in events:
            tags_html = " ".join(f'<span class="tag">{t}</span>' for t in e.tags[:3])
            sent = event_sentiment(e)
            place = f"{e.location.city}, {e.location.country}" if e.location.city else e.location.country
            with st.expander(f"{SEV_ICON[e.severity]}  {e.title}  —  {place} · {e.timestamp:%Y-%m-%d %H:%M}"):
                col_a, col_b = st.columns([3, 1])
                with col_a:
                    st.markdown(e.description)
                    st.markdown(tags_html, unsafe_allow_html=True)
                    if e.url:
                        st.markdown(f"[→ Source]({e.url})")
                with col_b:
                    st.markdown(f"**Source:** {e.source.name} ({e.source.type})")
                    st.markdown(f"**Threat:** `{threat_score(e, now):.1f}`")
                    st.markdown(f"**Sentiment:** {sent.label} · {sent.confidence * 100:.0f}%")

# ── TAB 2: MAP ────────────────────────────────────────────────────────────────
with tab_map:
    st.markdown("### 🗺️ Event Map")
    if folium is None:
        st.warning("folium / streamlit-folium not installed — map disabled.")
    else:
        m = folium.Map(location=[20, 0], zoom_start=2, tiles="CartoDB dark_matter")
        for e in events:
            lat, lng = e.location.coordinates
            folium.CircleMarker(
                location=[lat, lng],
                radius=9 if e.severity == "critical" else 7,
                color=SEVERITY_COLORS[e.severity],
                fill=True,
                fill_opacity=0.8,
                popup=folium.Popup(
                    f"<b>{e.title[:80]}</b><br>"
                    f"{e.location.country} · {e.source.name}<br>"
                    f"Severity: {e.severity}<br>"
                    f"{e.timestamp:%Y-%m-%d %H:%M} UTC",
                    max_width=300,
                ),
                tooltip=f"{e.location.country} — {e.severity}",
            ).add_to(m)
        st_folium(m, width=None, height=550, returned_objects=[])

# ── TAB 3: ANALYTICS ─────────────────────────────────────────────────────────
with tab_analytics:
    if not events:
        st.info("No data to analyse.")
    else:
        sub_sent, sub_threat, sub_pred, sub_geo = st.tabs(
            ["Sentiment", "Threats", "Predictive", "Geospatial"])

        with sub_sent:
            summary = summarize_sentiment(events)
            s1, s2, s3, s4 = st.columns(4)
            s1.metric("Positive", f"{summary.positive:.1f}%")
            s2.metric("Negative", f"{summary.negative:.1f}%")
            s3.metric("Neutral", f"{summary.neutral:.1f}%")
            s4.metric("Confidence", f"{summary.average_confidence:.1f}%")
            st.markdown(f"**Overall trend:** {summary.trend.capitalize()}")
            sent_df = pd.DataFrame([{
                "Title": e.title,
                "Country": e.location.country,
                "Label": s.label,
                "Score": round(s.score, 3),
                "Confidence": f"{s.confidence * 100:.0f}%",
            } for e, s in ((e, event_sentiment(e)) for e in events[:10])])
            st.dataframe(sent_df, use_container_width=True, hide_index=True)

        with sub_threat:
            t1, t2, t3, t4 = st.columns(4)
            t1.metric("Cyber", f"{threats.cyber_security:.1f}")
            t2.metric("Geopolitical", f"{threats.geopolitical_tension:.1f}")
            t3.metric("Economic", f"{threats.economic_risk:.1f}")
            t4.metric("Critical / Emerging", f"{threats.critical_threats} / {threats.emerging_threats}")

            st.markdown("#### Regional risk")
            for r in threats.regional_risks:
                st.markdown(f"**{r.region}** · {risk_level(r.risk_score)} · {r.threat_count} events · "
                            f"Primary: {', '.join(r.primary_threats) or 'None'}")
                st.progress(min(int(r.risk_score), 100))

            st.markdown("#### Highest priority threats")
            for i, (e, score) in enumerate(threats.highest_threats, 1):
                st.markdown(f"{i}. {e.title} — `{score:.1f}`")

        with sub_pred:
            predictions = generate_predictions(events)
            if not predictions:
                st.info("No elevated-risk patterns detected.")
            for p in predictions:
                st.markdown(f"**{p.description}** · {p.risk_level.upper()} · {p.timeframe}")
                st.caption(" · ".join(p.indicators))
                st.progress(p.confidence)

            st.markdown("#### 24h trends")
            trend_df = pd.DataFrame([{
                "Category": t.category,
                "Trend": t.trend,
                "Change %": round(t.change_rate, 1),
                "Confidence": round(t.confidence, 1),
                "Outlook": t.prediction,
            } for t in analyze_trends(events, now)])
            st.dataframe(trend_df, use_container_width=True, hide_index=True)

        with sub_geo:
            top, avg_risk = hotspots(events)
            g1, g2 = st.columns(2)
            g1.metric("Active Hotspots", len(top))
            g2.metric("Average Risk", f"{avg_risk:.2f}")
            if px is not None and top:
                geo_df = pd.DataFrame([{
                    "Country": h.country, "Risk": h.risk_score,
                    "Critical": h.critical, "High": h.high, "Total": h.total,
                } for h in top])
                fig = px.bar(geo_df, x="Risk", y="Country", orientation="h",
                             title="Hotspots by weighted risk", template="plotly_dark",
                             color="Risk", color_continuous_scale="YlOrRd")
                fig.update_layout(paper_bgcolor="#0a0c10", plot_bgcolor="#111418",
                                  font_family="IBM Plex Mono", showlegend=False)
                st.plotly_chart(fig, use_container_width=True)

# ── TAB 4: AUTOMATION ─────────────────────────────────────────────────────────
with tab_auto:
    pending = st.session_state.pending_triggers
    while pending:
        finished = pending.pop(0)
        st.session_state.store = record_trigger(st.session_state.store, finished)
        if not finished.success:
            st.error(f"Webhook test failed: {finished.error}")
    store = st.session_state.store
    metrics = automation_metrics(store, now)
    a1, a2, a3, a4 = st.columns(4)
    a1.metric("Webhooks", f"{metrics.active_webhooks}/{metrics.total_webhooks}")
    a2.metric("Total Triggers", metrics.total_triggers)
    a3.metric("Success Rate", f"{metrics.success_rate:.1f}%")
    a4.metric("Avg Response", f"{metrics.avg_response_ms:.0f} ms")

    sub_hooks, sub_rules, sub_patterns, sub_history = st.tabs(
        ["Webhooks", "Rules", "Intelligent Patterns", "Trigger History"])

    with sub_hooks:
        for w in store.webhooks:
            c1, c2, c3, c4 = st.columns([4, 1, 1, 1])
            c1.markdown(f"**{w.name}** {'🟢' if w.is_active else '⚪'}  \n`{w.url}`  \n"
                        f"{w.description} · {w.trigger_count} triggers")
            if c2.button("Toggle", key=f"tw_{w.id}"):
                st.session_state.store = toggle_webhook(st.session_state.store, w.id)
                st.rerun()
            if c3.button("Test", key=f"xw_{w.id}"):
                # worker thread only appends; the result is recorded on a later rerun
                dispatch_in_background(w, build_test_payload(),
                                       on_done=st.session_state.pending_triggers.append)
                st.toast(f"Test dispatched to {w.name}; see Trigger History")
            if c4.button("Delete", key=f"dw_{w.id}"):
                st.session_state.store = delete_webhook(st.session_state.store, w.id)
                st.rerun()

        with st.form("new_webhook", clear_on_submit=True):
            st.markdown("#### Add webhook")
            name = st.text_input("Name")
            url = st.text_input("URL")
            desc = st.text_input("Description")
            tags = st.text_input("Tags (comma separated)")
            if st.form_submit_button("Create webhook"):
                try:
                    st.session_state.store = add_webhook(st.session_state.store, name, url, desc, tags)
                    st.rerun()
                except ValueError as exc:
                    st.error(str(exc))

    with sub_rules:
        for r in store.rules:
            hook = store.webhook(r.webhook_id)
            c1, c2, c3 = st.columns([5, 1, 1])
            c1.markdown(f"**{r.name}** {'🟢' if r.is_active else '⚪'} → {hook.name if hook else '(missing webhook)'}  \n"
                        + " AND ".join(c.describe() for c in r.conditions)
                        + f"  \n{r.trigger_count} triggers")
            if c2.button("Toggle", key=f"tr_{r.id}"):
                st.session_state.store = toggle_rule(st.session_state.store, r.id)
                st.rerun()
            if c3.button("Delete", key=f"dr_{r.id}"):
                st.session_state.store = delete_rule(st.session_state.store, r.id)
                st.rerun()

        if st.button("▶️ Evaluate rules against current events"):
            fired = evaluate_rules(st.session_state.store, events)
            jobs = [(hook, build_rule_payload(rule, matched, now)) for rule, hook, matched in fired]
            results = deliver_many(jobs)
            for (rule, _, _), result in zip(fired, results):
                st.session_state.store = record_trigger(st.session_state.store, result, rule.id)
            failed = [r for r in results if not r.success]
            st.toast(f"{len(fired)} rule(s) fired, {len(failed)} delivery failure(s)")

        st.markdown("#### New rule")
        nc1, nc2, nc3, nc4 = st.columns([2, 2, 3, 1])
        ctype = nc1.selectbox("Type", CONDITION_TYPES, key="ctype")
        cop = nc2.selectbox("Operator", CONDITION_OPERATORS, key="cop")
        cval = nc3.text_input("Value (comma separated for 'in')", key="cval")
        if nc4.button("➕"):
            value = [v.strip() for v in cval.split(",") if v.strip()] if cop == "in" else cval.strip()
            st.session_state.new_conditions.append(AutomationCondition(ctype, cop, value))
        for c in st.session_state.new_conditions:
            st.caption(c.describe())
        rule_name = st.text_input("Rule name")
        hook_ids = [w.id for w in store.webhooks]
        hook_id = st.selectbox("Webhook", hook_ids,
                               format_func=lambda i: store.webhook(i).name) if hook_ids else None
        can_create = bool(rule_name.strip() and st.session_state.new_conditions and hook_id)
        if st.button("Create rule", disabled=not can_create):
            st.session_state.store = add_rule(st.session_state.store, rule_name, hook_id,
                                              st.session_state.new_conditions)
            st.session_state.new_conditions = []
            st.rerun()

    with sub_patterns:
        def _run_scan():
            current = st.session_state.store
            updated = scan_patterns(current.patterns, events)
            current = update_patterns(current, updated)
            active = [w for w in current.webhooks if w.is_active]
            if active:
                jobs = [(active[0], build_intelligence_payload(p, events)) for p in alertable_patterns(updated)]
                for result in deliver_many(jobs):
                    current = record_trigger(current, result)
            st.session_state.store = current
            st.session_state.last_scan = datetime.now(timezone.utc)
            logger.info("Pattern scan over %d events", len(events))

        auto = st.toggle("Auto-analysis every 10 minutes", value=False)

        @st.fragment(run_every=AUTO_SCAN_INTERVAL_SECONDS if auto else None)
        def _pattern_panel():
            last = st.session_state.get("last_scan")
            # full-page reruns also enter the fragment; only scan once per interval
            if auto and (last is None or
                         (datetime.now(timezone.utc) - last).total_seconds() >= AUTO_SCAN_INTERVAL_SECONDS):
                _run_scan()
            if st.button("🧠 Analyze threats now"):
                _run_scan()
                st.toast(f"Analyzed {len(events)} events")
            for p in st.session_state.store.patterns:
                detected = f"{p.last_detected:%Y-%m-%d %H:%M}" if p.last_detected else "never"
                st.markdown(f"**{p.name}** · {pattern_status(p.confidence)} · {p.confidence}% · last {detected}  \n"
                            f"{p.description}  \n" + " AND ".join(c.describe() for c in p.conditions))

        _pattern_panel()

    with sub_history:
        current = st.session_state.store
        history = current.triggers
        hook_names = {w.id: w.name for w in current.webhooks}
        if not history:
            st.info("No deliveries yet.")
        else:
            hist_df = pd.DataFrame([{
                "Time": t.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                "Webhook": hook_names.get(t.webhook_id, t.webhook_id),
                "Status": "Success" if t.success else "Failed",
                "Response (ms)": t.response_ms,
                "Error": t.error or "",
            } for t in reversed(history)])
            st.dataframe(hist_df, use_container_width=True, hide_index=True)

# ── TAB 5: BRIEFING ───────────────────────────────────────────────────────────
with tab_brief:
    st.markdown("### 📄 Auto-Generated Situation Report")
    if not events:
        st.info("No events to brief on.")
    elif st.button("⚡ Generate Briefing Note"):
        brief_text = generate_briefing(events, now)
        st.markdown(brief_text)
        st.download_button(
            "⬇️ Download Briefing (.md)",
            brief_text.encode("utf-8"),
            f"osint_sitrep_{now:%Y%m%d_%H%M}.md",
            "text/markdown",
        )

# ── TAB 6: RAW DATA ───────────────────────────────────────────────────────────
with tab_raw:
    if df.empty:
        st.info("No data yet.")
    else:
        st.dataframe(df, use_container_width=True, height=600,
                     column_config={"Link": st.column_config.LinkColumn()})

# ── TAB 7: EXPORT ─────────────────────────────────────────────────────────────
with tab_export:
    st.markdown("### ⬇️ Export Data")
    fmt = st.selectbox("Format", list(EXPORT_FORMATS))
    inc_analytics = st.checkbox("Include analytics", value=True)
    inc_threats = st.checkbox("Include threat assessment", value=True)
    inc_predictions = st.checkbox("Include predictions", value=True)
    options = ExportOptions(format=fmt, include_analytics=inc_analytics,
                            include_threat_assessment=inc_threats,
                            include_predictions=inc_predictions, time_range=time_range)
    payload = render_export(build_export(events, options, now), events, fmt, now)
    st.download_button(
        f"📥 Download {fmt.upper()}",
        payload,
        export_filename(fmt, now),
        EXPORT_FORMATS[fmt],
        use_container_width=True,
    )
    st.caption(f"{len(events)} events ready · Public sources only")
