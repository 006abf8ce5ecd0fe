"""
Weighbridge Dashboard — Interactive Dashboard

Run with:  streamlit run app.py
"""

import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from weighbridge_dashboard.config import (
    FACTOR_METRICS,
    KPI_REGISTRY,
    MILL_NAME,
    SEARCH_CATEGORIES,
    TICKETS_CSV_FILE,
)
from weighbridge_dashboard.dashboard import (
    get_available_locations,
    get_dashboard_overview,
    get_location_filter_options,
)
from weighbridge_dashboard.exporters import tickets_to_csv
from weighbridge_dashboard.loaders import EmptyImportError, load_tickets_csv, parse_tickets_csv
from weighbridge_dashboard.simulator import generate_tickets, generate_weather_logs
from weighbridge_dashboard.transforms import build_fact_ticket

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Weighbridge Dashboard",
    page_icon="🚛",
    layout="wide",
    initial_sidebar_state="expanded",
)

RAG_COLORS = {
    "green": "#2ecc71",
    "amber": "#f39c12",
    "red": "#e74c3c",
    "grey": "#95a5a6",
}

GRADE_COLORS = {"A": "#2ecc71", "B": "#f39c12", "C": "#e74c3c"}

WEATHER_ICONS = {
    "clear": "☀️",
    "cloudy": "☁️",
    "light_rain": "🌦️",
    "heavy_rain": "🌧️",
    "unknown": "",
}

SIMULATION_END = "2026-02-14"


# ---------------------------------------------------------------------------
# Data loading (cached)
# ---------------------------------------------------------------------------
@st.cache_data
def load_all_data():
    if TICKETS_CSV_FILE.exists():
        tickets = load_tickets_csv(str(TICKETS_CSV_FILE)).tickets
        now = None
    else:
        tickets = generate_tickets(end_date=SIMULATION_END)
        now = SIMULATION_END

    return {
        "fact": build_fact_ticket(tickets),
        "weather": generate_weather_logs(end_date=SIMULATION_END),
        "now": now,
    }


data = load_all_data()

if "imported" not in st.session_state:
    st.session_state["imported"] = []

fact = data["fact"]
if st.session_state["imported"]:
    # imported rows replace stored rows with the same id
    imported = build_fact_ticket(st.session_state["imported"])
    fact = pd.concat([imported, fact[~fact["id"].isin(imported["id"])]], ignore_index=True)

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title(MILL_NAME)
st.sidebar.markdown("Fresh Fruit Bunch Intake Dashboard")
st.sidebar.divider()

window_labels = {
    "Today": "today",
    "This Week": "week",
    "This Month": "month",
    "Custom": "custom",
    "All Time": "all",
}
window = window_labels[st.sidebar.selectbox("Time Window", list(window_labels), index=2)]

start = end = None
if window == "custom":
    start = st.sidebar.date_input("From")
    end = st.sidebar.date_input("To")

query = st.sidebar.text_input("Search")
category = st.sidebar.selectbox("Search In", SEARCH_CATEGORIES)
location_filter = st.sidebar.selectbox("Location", get_location_filter_options(fact))

page = st.sidebar.radio(
    "Navigate",
    ["Overview", "Fleet", "Quality", "Locations", "Forecast", "Factors", "Import / Export"],
)

st.sidebar.divider()
st.sidebar.caption(f"{len(fact):,} tickets on record")

selected_location = None
if page == "Locations":
    locations = get_available_locations(fact)
    if locations:
        selected_location = st.selectbox("Drill into location", locations)

factor_lag_days, factor_x, factor_y = 0, "rainfall_mm", "net_weight"
if page == "Factors":
    col1, col2, col3 = st.columns(3)
    metric_keys = list(FACTOR_METRICS)
    factor_x = col1.selectbox("X factor", metric_keys, index=metric_keys.index("rainfall_mm"),
                              format_func=FACTOR_METRICS.get)
    factor_y = col2.selectbox("Y factor", metric_keys, index=metric_keys.index("net_weight"),
                              format_func=FACTOR_METRICS.get)
    factor_lag_days = col3.slider("Lag on X (days)", min_value=0, max_value=7, value=0)

overview = get_dashboard_overview(
    fact,
    window=window,
    now=data["now"],
    start=start,
    end=end,
    query=query or None,
    category=category,
    location_filter=location_filter,
    selected_location=selected_location,
    weather_logs=data["weather"],
    factor_lag_days=factor_lag_days,
    factor_x=factor_x,
    factor_y=factor_y,
)


# ---------------------------------------------------------------------------
# Helper: RAG metric card
# ---------------------------------------------------------------------------
def rag_card(label: str, value: str, caption: str, rag: str):
    color = RAG_COLORS.get(rag, RAG_COLORS["grey"])
    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{value}</div>
            <div style="font-size: 13px; color: #666;">{caption}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def comparison_rag(kpi_name: str) -> str:
    comparison = overview["comparison"]
    if comparison is None:
        return "grey"
    row = comparison[comparison["kpi_name"] == kpi_name]
    return row["rag"].iloc[0] if not row.empty else "grey"


# ===========================================================================
# PAGE: Overview
# ===========================================================================
if page == "Overview":
    st.title("Intake Overview")
    st.caption(f"{overview['filtered_tickets']:,} of {overview['total_tickets']:,} tickets in view")

    kpis = overview["kpis"]
    cols = st.columns(4)
    with cols[0]:
        rag_card(
            "Net Weight",
            f"{kpis['total_net_weight']:,.0f} kg",
            f"Target {kpis['current_target']:,.0f} kg ({kpis['target_pct']:.0f}%)",
            comparison_rag("total_net_weight"),
        )
    with cols[1]:
        rag_card("Bunches", f"{kpis['total_bunch_count']:,.0f}", "fresh fruit bunches",
                 comparison_rag("total_bunch_count"))
    with cols[2]:
        rag_card("Avg Ratio", f"{kpis['avg_ratio']:.2f}", "kg per bunch", comparison_rag("avg_ratio"))
    with cols[3]:
        rag_card("Trucks", f"{kpis['trip_count']:,}", f"avg dwell {kpis['avg_dwell_minutes']} min",
                 comparison_rag("trip_count"))

    # Target gauge
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=kpis["target_pct"],
        number={"suffix": "%"},
        gauge={"axis": {"range": [0, 100]}, "bar": {"color": "#3498db"}},
        title={"text": "Target Achievement"},
    ))
    fig.update_layout(height=250, margin=dict(l=10, r=10, t=40, b=10))
    st.plotly_chart(fig, use_container_width=True)

    col1, col2 = st.columns([2, 1])
    with col1:
        st.subheader("Daily Net Weight")
        trend = overview["trend"]
        if not trend.empty:
            fig = go.Figure(go.Bar(x=trend["date"], y=trend["total"], marker_color="#3498db"))
            fig.update_layout(height=350, yaxis_title="kg", plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("No tickets in this window.")

    with col2:
        st.subheader("By Location")
        totals = overview["location_totals"]
        if not totals.empty:
            fig = px.pie(totals, names="name", values="value", hole=0.5)
            fig.update_layout(height=350, margin=dict(l=10, r=10, t=10, b=10))
            st.plotly_chart(fig, use_container_width=True)

    st.subheader("Peak Arrival Hours")
    peak = overview["peak_hours"]
    fig = go.Figure(go.Bar(x=peak["hour"], y=peak["count"], marker_color="#16a085"))
    fig.update_layout(height=300, yaxis_title="Trucks", plot_bgcolor="rgba(0,0,0,0)")
    st.plotly_chart(fig, use_container_width=True)

    if overview["comparison"] is not None:
        st.subheader("Against Previous Period")
        display_df = overview["comparison"].copy()
        display_df["delta_pct"] = display_df["delta_pct"].apply(lambda x: f"{x:+.1f}%")

        def color_rag(val):
            return f"background-color: {RAG_COLORS.get(val, '#ffffff')}22; color: {RAG_COLORS.get(val, '#333')}"

        styled = display_df.style.map(color_rag, subset=["rag"])
        st.dataframe(styled, use_container_width=True, hide_index=True)

    st.subheader("Last 7 Days")
    spark = overview["sparklines"]
    if not spark.empty:
        cols = st.columns(4)
        for col, (field, label) in zip(cols, [
            ("net_weight", "Net kg"), ("bunch_count", "Bunches"),
            ("trip_count", "Trucks"), ("ratio", "kg/bunch"),
        ]):
            with col:
                fig = go.Figure(go.Scatter(x=spark["date"], y=spark[field], mode="lines+markers"))
                fig.update_layout(title=label, height=180, margin=dict(l=10, r=10, t=30, b=10),
                                  xaxis_visible=False, plot_bgcolor="rgba(0,0,0,0)")
                st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Fleet
# ===========================================================================
elif page == "Fleet":
    st.title("Fleet Leaderboard")

    board = overview["vehicles"]
    if board.empty:
        st.warning("No trucks delivered in this window.")
    else:
        tier_counts = board["tier"].value_counts()
        cols = st.columns(3)
        for col, (tier, color) in zip(cols, [("Legend", "#8e44ad"), ("Pro", "#2980b9"), ("Rookie", "#95a5a6")]):
            with col:
                st.markdown(
                    f"<div style='text-align:center; padding:12px; background:{color}15; "
                    f"border-radius:8px; border-top:3px solid {color};'>"
                    f"<div style='font-size:28px; font-weight:700; color:{color};'>{tier_counts.get(tier, 0)}</div>"
                    f"<div style='font-size:13px; color:#666;'>{tier}</div></div>",
                    unsafe_allow_html=True,
                )

        st.divider()
        display_cols = [
            "plate_number", "tier", "current_streak", "trip_count", "total_net_weight",
            "prev_total_net_weight", "avg_dwell_minutes", "last_visit", "lifetime_trips",
        ]
        st.dataframe(board[display_cols].round(1), use_container_width=True, hide_index=True)

        plate = st.selectbox("Ticket history", board["plate_number"])
        history = board.loc[board["plate_number"] == plate, "tickets"].iloc[0]
        st.dataframe(pd.DataFrame(history), use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: Quality
# ===========================================================================
elif page == "Quality":
    st.title("Fruit Quality")

    quality = overview["quality"]
    cols = st.columns(3)
    for col, grade in zip(cols, ["A", "B", "C"]):
        with col:
            prev = quality["prev_grade_counts"][grade]
            st.metric(f"Grade {grade}", quality["grade_counts"][grade],
                      delta=quality["grade_counts"][grade] - prev)

    scatter = quality["scatter"]
    if not scatter.empty:
        fig = px.scatter(
            scatter, x="net_weight", y="ratio", color="grade",
            color_discrete_map=GRADE_COLORS, hover_data=["id", "plate_number", "location"],
        )
        fig.update_layout(height=400, xaxis_title="Net weight (kg)", yaxis_title="kg per bunch",
                          plot_bgcolor="rgba(0,0,0,0)")
        st.plotly_chart(fig, use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Best Locations")
        st.dataframe(quality["location_leaderboard"].round(2), use_container_width=True, hide_index=True)
    with col2:
        st.subheader("Grade C Tickets")
        st.dataframe(quality["low_grade"].round(2), use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: Locations
# ===========================================================================
elif page == "Locations":
    st.title("Locations")

    loc = overview["location"]
    if loc is not None:
        cols = st.columns(4)
        cols[0].metric("Net Weight", f"{loc['total_net_weight']:,.0f} kg")
        cols[1].metric("Bunches", f"{loc['total_bunch_count']:,.0f}")
        cols[2].metric("Trips", f"{loc['trip_count']:,}")
        cols[3].metric("Avg Ratio", f"{loc['avg_ratio']:.2f}")

        trend = loc["trend"]
        if not trend.empty:
            fig = go.Figure(go.Scatter(x=trend["date"], y=trend["total"], mode="lines+markers",
                                       fill="tozeroy", line=dict(color="#27ae60")))
            fig.update_layout(title=f"{loc['name']} — last 14 delivery days", height=350,
                              yaxis_title="kg", plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True)

    st.subheader("Benchmark")
    bench = overview["benchmark"]
    if not bench.empty:
        fig = go.Figure(go.Bar(x=bench["score"], y=bench["name"], orientation="h", marker_color="#2980b9"))
        fig.update_layout(height=max(250, len(bench) * 40), xaxis_title="Score (0-100)",
                          plot_bgcolor="rgba(0,0,0,0)", yaxis=dict(autorange="reversed"))
        st.plotly_chart(fig, use_container_width=True)
        st.dataframe(bench.round(2), use_container_width=True, hide_index=True)
    else:
        st.info("No tickets in this window.")


# ===========================================================================
# PAGE: Forecast
# ===========================================================================
elif page == "Forecast":
    st.title("Supply Forecast")

    forecast = overview["forecast"]
    chart = forecast["chart"]
    if chart.empty:
        st.warning("No ticket history to forecast from.")
    else:
        col1, col2 = st.columns(2)
        col1.metric("Daily Baseline", f"{forecast['baseline']:,.0f} kg")
        col2.metric("Projected (7 days)", f"{forecast['total_projected']:,} kg")

        icons = chart["condition"].map(WEATHER_ICONS).fillna("")
        fig = go.Figure()
        fig.add_trace(go.Bar(x=chart["date"], y=chart["actual"], name="Actual", marker_color="#3498db"))
        fig.add_trace(go.Scatter(
            x=chart["date"], y=chart["predicted"], name="Predicted",
            mode="lines+markers+text", text=icons, textposition="top center",
            line=dict(color="#e67e22", width=2, dash="dash"),
        ))
        fig.add_trace(go.Bar(
            x=chart["date"], y=chart["rainfall_mm"], name="Rainfall (mm)",
            marker_color="#7f8c8d", opacity=0.4, yaxis="y2",
        ))
        fig.update_layout(
            height=420,
            yaxis_title="kg",
            yaxis2=dict(title="mm", overlaying="y", side="right", showgrid=False),
            plot_bgcolor="rgba(0,0,0,0)",
        )
        st.plotly_chart(fig, use_container_width=True)

        with st.expander("Insight context"):
            st.json(overview["insight_context"])


# ===========================================================================
# PAGE: Factors
# ===========================================================================
elif page == "Factors":
    st.title("Factor Analysis")

    factors = overview["factors"]
    fit = factors["fit"]
    points = fit["points"]
    if len(factors["daily"]) < 2:
        st.warning("Need at least two days of intake or rainfall to correlate.")
    else:
        labels = list(FACTOR_METRICS.values())
        matrix = factors["matrix"]
        fig = go.Figure(go.Heatmap(
            z=matrix.values, x=labels, y=labels,
            zmin=-1, zmax=1, colorscale="RdBu",
            text=matrix.round(2).values, texttemplate="%{text}",
        ))
        fig.update_layout(height=420, title="Correlation matrix (Pearson r)")
        st.plotly_chart(fig, use_container_width=True)

        st.metric(
            f"{FACTOR_METRICS[factor_y]} vs {FACTOR_METRICS[factor_x]}",
            f"r = {fit['r']:.2f}",
        )
        scatter = px.scatter(
            points, x=factor_x, y=factor_y, color="is_outlier", hover_data=["date"],
            color_discrete_map={True: "#e74c3c", False: "#3498db"},
            labels={factor_x: FACTOR_METRICS[factor_x], factor_y: FACTOR_METRICS[factor_y]},
        )
        xs = [points[factor_x].min(), points[factor_x].max()]
        scatter.add_trace(go.Scatter(
            x=xs, y=[fit["slope"] * v + fit["intercept"] for v in xs],
            mode="lines", name="Trend", line=dict(color="#2c3e50", dash="dot"),
        ))
        st.plotly_chart(scatter, use_container_width=True)
        st.caption(f"{int(points['is_outlier'].sum())} outlier day(s), lag {factors['lag_days']} day(s)")


# ===========================================================================
# PAGE: Import / Export
# ===========================================================================
elif page == "Import / Export":
    st.title("Import / Export")

    st.subheader("Import CSV")
    st.caption("Columns: ID, Tanggal, Jam Masuk, Jam Keluar, No Polisi, Netto, Janjang, Lokasi")
    upload = st.file_uploader("Ticket CSV", type=["csv"])
    if upload is not None:
        try:
            result = parse_tickets_csv(upload.getvalue().decode("utf-8-sig"))
        except EmptyImportError as e:
            st.error(str(e))
        else:
            st.session_state["imported"] = [t.to_dict() for t in result.tickets]
            st.success(f"{result.valid} tickets imported, {result.skipped} rows skipped.")

    st.subheader("Export")
    st.download_button(
        "Download filtered tickets",
        data=tickets_to_csv(overview["filtered"]),
        file_name="tickets_backup.csv",
        mime="text/csv",
    )
    st.dataframe(overview["filtered"], use_container_width=True, hide_index=True)

    st.caption("KPI units: " + ", ".join(f"{k} ({v['unit']})" for k, v in KPI_REGISTRY.items()))
