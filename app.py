"""
WasteWealth - Worker Dashboard
==============================

Streamlit dashboard for collection workers.

Features:
- Worker KPI cards (today's earnings, active requests, waste processed)
- Available requests with urgency filter, search and accept buttons
- Status updates for accepted requests
- Map of pickup locations
- Recent activity feed

Run:
    streamlit run app.py
"""

import os
import sys
from typing import Dict, List

import pandas as pd
import pydeck as pdk
import streamlit as st

# Ensure the package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wastewealth import config
from wastewealth.lifecycle import ALLOWED_TRANSITIONS, InvalidTransitionError
from wastewealth.models import PickupRequest, RequestStatus
from wastewealth.storage import JsonFileStorage
from wastewealth.store import RequestStore, search_requests
from wastewealth.utils import calculate_co2_saved, format_currency, format_distance, format_weight

# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="WasteWealth Worker",
    page_icon="♻️",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main .block-container {
        padding-top: 2rem;
        padding-bottom: 2rem;
    }

    .kpi-card {
        background: linear-gradient(135deg, #11998e 0%, #38ef7d 100%);
        border-radius: 16px;
        padding: 1.25rem;
        color: white;
        text-align: center;
        box-shadow: 0 10px 40px rgba(17, 153, 142, 0.3);
    }

    .kpi-card.blue {
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        box-shadow: 0 10px 40px rgba(102, 126, 234, 0.3);
    }

    .kpi-card.orange {
        background: linear-gradient(135deg, #f093fb 0%, #f5576c 100%);
        box-shadow: 0 10px 40px rgba(245, 87, 108, 0.3);
    }

    .kpi-value {
        font-size: 2.2rem;
        font-weight: 800;
        margin: 0.4rem 0;
    }

    .kpi-label {
        font-size: 0.85rem;
        opacity: 0.9;
        text-transform: uppercase;
        letter-spacing: 1px;
    }

    .section-header {
        font-size: 1.4rem;
        font-weight: 700;
        color: #1a1a2e;
        margin: 1.5rem 0 1rem 0;
        padding-bottom: 0.5rem;
        border-bottom: 3px solid #11998e;
    }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)

URGENCY_COLORS: Dict[str, List[int]] = {
    "high": [220, 38, 38],
    "medium": [217, 119, 6],
    "low": [5, 150, 105],
}

# =============================================================================
# STORE
# =============================================================================


def get_store() -> RequestStore:
    """Create the session's store once and subscribe the notification feed."""
    if "store" not in st.session_state:
        store = RequestStore(JsonFileStorage(config.STORAGE_DIR))
        st.session_state["notifications"] = []

        def notify(message: str) -> None:
            st.session_state["notifications"].append(message)

        store.on_request_added(lambda req: notify(f"New request from {req.user_name}"))
        store.on_request_accepted(lambda req: notify(f"Accepted request from {req.user_name}"))
        st.session_state["store"] = store
    return st.session_state["store"]


def show_notifications() -> None:
    for message in st.session_state.get("notifications", []):
        st.toast(message)
    st.session_state["notifications"] = []


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar(store: RequestStore) -> Dict[str, str]:
    st.sidebar.markdown("## ♻️ Worker")
    worker_id = st.sidebar.text_input("Worker ID", value=config.DEFAULT_WORKER_ID)

    st.sidebar.markdown("---")
    st.sidebar.markdown("### 🔎 Filter")
    urgency = st.sidebar.selectbox("Urgency", ["all", "high", "medium", "low"])
    query = st.sidebar.text_input("Search", placeholder="Name, address or material")

    st.sidebar.markdown("---")
    with st.sidebar.expander("Danger zone"):
        if st.button("Clear all requests", use_container_width=True):
            store.clear_all_requests()
            st.rerun()

    return {"worker_id": worker_id, "urgency": urgency, "query": query}


# =============================================================================
# KPI DISPLAY
# =============================================================================

def render_kpi_row(store: RequestStore) -> None:
    stats = store.get_worker_stats()
    cards = [
        ("", "Today's Earnings", format_currency(stats.earnings, config.CURRENCY_SYMBOL),
         f"{stats.completed_today} completed today"),
        ("blue", "Active Requests", stats.active_requests, f"{stats.today_requests} new today"),
        ("orange", "Monthly Earnings", format_currency(stats.monthly_earnings, config.CURRENCY_SYMBOL),
         f"{stats.completed_pickups} pickups"),
        ("", "Waste Processed", format_weight(stats.waste_processed, "kg"),
         f"★ {stats.rating:.1f} · {stats.efficiency:.0f}% efficiency"),
    ]
    for col, (style, label, value, footnote) in zip(st.columns(4), cards):
        with col:
            st.markdown(f"""
            <div class="kpi-card {style}">
                <div class="kpi-label">{label}</div>
                <div class="kpi-value">{value}</div>
                <div>{footnote}</div>
            </div>
            """, unsafe_allow_html=True)


# =============================================================================
# REQUEST LISTS
# =============================================================================

def requests_frame(requests: List[PickupRequest]) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "ID": req.request_id,
            "Requester": req.user_name,
            "Waste": ", ".join(f"{w.name} ({format_weight(w.quantity, w.unit)})" for w in req.waste_types),
            "Urgency": req.urgency.value,
            "Type": req.pickup_type.value,
            "Amount": format_currency(req.total_amount, config.CURRENCY_SYMBOL),
            "Distance": format_distance(req.distance),
            "Address": req.address,
        }
        for req in requests
    ])


def render_available(store: RequestStore, filters: Dict[str, str]) -> None:
    st.markdown('<div class="section-header">📥 Available Requests</div>', unsafe_allow_html=True)
    requests = search_requests(store.get_available_requests(), filters["urgency"], filters["query"])
    if not requests:
        st.info("No pending requests match the current filter.")
        return

    st.dataframe(requests_frame(requests), use_container_width=True, hide_index=True)

    col1, col2 = st.columns([3, 1])
    with col1:
        selected = st.selectbox(
            "Request to accept",
            options=[req.request_id for req in requests],
            format_func=lambda rid: next(f"{r.user_name} · {r.request_id}" for r in requests if r.request_id == rid),
        )
    with col2:
        st.markdown("<br>", unsafe_allow_html=True)
        if st.button("✅ Accept", use_container_width=True):
            if store.accept_request(selected, filters["worker_id"]):
                st.rerun()
            else:
                st.error("Request is no longer available.")


def render_my_jobs(store: RequestStore, worker_id: str) -> None:
    st.markdown('<div class="section-header">🚚 My Jobs</div>', unsafe_allow_html=True)
    jobs = [
        req for req in store.get_requests_by_status("all")
        if req.accepted_by == worker_id and req.status in (RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS)
    ]
    if not jobs:
        st.info("No accepted jobs right now.")
        return

    for req in jobs:
        with st.expander(f"{req.user_name} · {req.status.value} · {format_currency(req.total_amount, config.CURRENCY_SYMBOL)}"):
            st.write(req.address)
            if req.notes:
                st.caption(req.notes)
            choices = sorted(s.value for s in ALLOWED_TRANSITIONS[req.status])
            target = st.selectbox("Move to", choices, key=f"target_{req.request_id}")
            notes = st.text_input("Notes", key=f"notes_{req.request_id}")
            if st.button("Update", key=f"update_{req.request_id}"):
                try:
                    store.update_request_status(req.request_id, target, notes or None)
                    st.rerun()
                except InvalidTransitionError as e:
                    st.error(str(e))


# =============================================================================
# MAP & ACTIVITY
# =============================================================================

def render_map(store: RequestStore) -> None:
    located = [req for req in store.get_requests_by_status("all") if req.location]
    if not located:
        return

    st.markdown('<div class="section-header">🗺️ Pickup Locations</div>', unsafe_allow_html=True)
    data = [
        {
            "position": [req.location.longitude, req.location.latitude],
            "label": f"{req.user_name} · {req.status.value}",
            "color": URGENCY_COLORS[req.urgency.value] if req.status == RequestStatus.PENDING else [148, 163, 184],
        }
        for req in located
    ]
    layer = pdk.Layer(
        "ScatterplotLayer",
        data,
        get_position="position",
        get_fill_color="color",
        get_radius=120,
        opacity=0.7,
        pickable=True,
    )
    center_lat = sum(req.location.latitude for req in located) / len(located)
    center_lng = sum(req.location.longitude for req in located) / len(located)
    view_state = pdk.ViewState(latitude=center_lat, longitude=center_lng, zoom=12)
    st.pydeck_chart(pdk.Deck(layers=[layer], initial_view_state=view_state, tooltip={"text": "{label}"}))


def render_activity(store: RequestStore) -> None:
    st.markdown('<div class="section-header">🕒 Recent Activity</div>', unsafe_allow_html=True)
    activities = store.get_recent_activity()
    if not activities:
        st.caption("Nothing yet.")
    for entry in activities:
        st.markdown(
            f"<span style='color:{entry.color};'>●</span> {entry.action} "
            f"<span style='color:#888;'>· {entry.time}</span>",
            unsafe_allow_html=True,
        )

    completed = store.get_requests_by_status(RequestStatus.COMPLETED)
    co2 = sum(
        calculate_co2_saved(item.quantity, item.name.replace("-", ""))
        for req in completed for item in req.waste_types if item.unit == "kg"
    )
    if co2:
        st.success(f"Your completed pickups saved about {co2:.1f} kg of CO2.")


# =============================================================================
# MAIN APPLICATION
# =============================================================================

def main():
    """Main application entry point."""
    st.markdown("""
    <div style="text-align: center; padding: 1rem 0 1.5rem 0;">
        <h1 style="font-size: 2.6rem; font-weight: 800; color: #11998e; margin-bottom: 0.25rem;">
            WasteWealth Worker
        </h1>
        <p style="font-size: 1.1rem; color: #666;">Pickup requests, earnings and activity</p>
    </div>
    """, unsafe_allow_html=True)

    store = get_store()
    filters = render_sidebar(store)
    show_notifications()

    render_kpi_row(store)
    render_available(store, filters)
    render_my_jobs(store, filters["worker_id"])

    col1, col2 = st.columns([3, 2])
    with col1:
        render_map(store)
    with col2:
        render_activity(store)


if __name__ == "__main__":
    main()
