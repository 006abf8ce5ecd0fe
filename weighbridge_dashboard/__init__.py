"""
Weighbridge Dashboard — Palm-Oil Mill Intake Analytics

Analytics backend that turns raw weighbridge tickets (one per truck
delivery of fresh fruit bunches) into a dashboard-ready data layer:
headline KPIs against a dynamic target, quality grades, a vehicle loyalty
leaderboard, per-location drill-downs and a short supply forecast.

To swap the CSV/Excel inputs for a database feed:
    Pass rows from any source to transforms.build_fact_ticket. Source field
    names (tanggal, nopol, netto, ...) are mapped onto the fact_ticket
    schema, so the analytics functions remain unchanged.

To connect to Streamlit/Dash:
    Call dashboard.get_dashboard_overview(tickets, window, now) to get a
    plain dict suitable for rendering cards, trend charts (Plotly), the
    leaderboard and the forecast.

To change targets or thresholds:
    Edit config (BASE_DAILY_TARGET_KG, grade and tier cut-offs,
    LOCATION_GROUPS, WEEKDAY_MODIFIERS) or pass overrides as keyword
    arguments.
"""
