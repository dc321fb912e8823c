import os

import streamlit as st
import requests
import pandas as pd
import plotly.express as px
import folium  # type: ignore
from dotenv import load_dotenv
from streamlit_folium import st_folium  # type: ignore

from dashboard_state import DashboardSession, park_style, feature_bounds

load_dotenv()

# Configure Streamlit page
st.set_page_config(
    page_title="Africa Parks Dashboard",
    page_icon="🦁",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
.main .block-container {
    max-width: 100%;
}
iframe {
    width: 100% !important;
}
.park-tag {
    display: inline-block;
    background-color: #f4e6cc;
    color: #5a2f12;
    border-radius: 0.6rem;
    padding: 0.1rem 0.5rem;
    margin: 0 0.25rem 0.25rem 0;
    font-size: 0.75rem;
}
</style>
""", unsafe_allow_html=True)

# API base URL
API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

MAP_CENTER = [-2.1, 35.1]
MAP_ZOOM = 7
TILES_URL = "https://{s}.tile.openstreetmap.fr/hot/{z}/{x}/{y}.png"
TILES_ATTR = "© OpenStreetMap contributors, tiles by Humanitarian OpenStreetMap Team"

# -----------------------
# Session State
# -----------------------

if "dashboard" not in st.session_state:
    st.session_state["dashboard"] = DashboardSession()
if "last_map_click" not in st.session_state:
    st.session_state["last_map_click"] = None
if "park_search" not in st.session_state:
    st.session_state["park_search"] = ""
if "filter_mode" not in st.session_state:
    st.session_state["filter_mode"] = st.session_state["dashboard"].filter_mode

session: DashboardSession = st.session_state["dashboard"]


@st.cache_data
def fetch_geojson():
    """Fetch all park polygons, including the ones without metadata (drawn but not clickable)."""
    try:
        resp = requests.get(f"{API_BASE}/geojson", params={"include_unmatched": True})
        resp.raise_for_status()
        return resp.json()
    except Exception as e:
        st.error(f"Failed to fetch park polygons: {e}")
        return {"type": "FeatureCollection", "features": []}


@st.cache_data
def fetch_filter_modes():
    """Filter modes the API accepts for the park list, with their labels."""
    try:
        resp = requests.get(f"{API_BASE}/metadata/filter-modes")
        resp.raise_for_status()
        return resp.json()
    except Exception as e:
        st.error(f"Failed to fetch filter modes: {e}")
        return []


@st.cache_data
def fetch_park_cards(mode, keyword):
    """Fetch list cards for the current filter mode and keyword."""
    try:
        resp = requests.get(f"{API_BASE}/parks", params={"mode": mode, "q": keyword})
        resp.raise_for_status()
        return resp.json()
    except Exception as e:
        st.error(f"Failed to fetch parks: {e}")
        return []


@st.cache_data
def fetch_park_detail(park_id):
    try:
        resp = requests.get(f"{API_BASE}/parks/{park_id}/details")
        resp.raise_for_status()
        return resp.json()
    except Exception as e:
        st.error(f"Failed to load park details: {e}")
        return None


@st.cache_data
def fetch_map_info(park_id):
    # 404 just means the park has no polygon on the map
    try:
        resp = requests.get(f"{API_BASE}/parks/{park_id}/map-info")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()
    except Exception:
        return None


@st.cache_data
def fetch_country_summary():
    try:
        resp = requests.get(f"{API_BASE}/metadata/countries")
        resp.raise_for_status()
        return resp.json()
    except Exception:
        return []


def select_park(park_id):
    """Single entry point for list clicks and map clicks."""
    if session.select_park(park_id, known_ids=known_ids):
        st.rerun()


# -----------------------
# UI Layout
# -----------------------

st.title("🦁 Africa Parks Dashboard")
st.markdown("Tourism-relevant national parks and reserves from the World Database on Protected Areas.")

geojson = fetch_geojson()
interactive_features = [f for f in geojson.get("features", []) if f["properties"].get("interactive")]
background_features = [f for f in geojson.get("features", []) if not f["properties"].get("interactive")]
# A multi-parcel park has several features under one id
features_by_id = {}
for f in interactive_features:
    features_by_id.setdefault(f["properties"]["id"], []).append(f)

# Sidebar: search, filter mode and the park list
st.sidebar.header("🔍 Find a Park")


def clear_filters():
    # Runs as a button callback, before the widgets below are drawn again
    st.session_state["park_search"] = ""
    session.set_filter(keyword="")
    session.clear_selection()


keyword = st.sidebar.text_input("Search", key="park_search")
filter_labels = {m["mode"]: m["label"] for m in fetch_filter_modes()} or {session.filter_mode: session.filter_mode}
mode = st.sidebar.radio(
    "Filter by",
    options=list(filter_labels.keys()),
    format_func=lambda m: filter_labels[m],
    horizontal=True,
    key="filter_mode",
)
session.set_filter(mode=mode, keyword=keyword)

st.sidebar.button("🔄 Clear Selection", key="clear_selection_btn", on_click=clear_filters)

cards = fetch_park_cards(session.filter_mode, session.keyword)
known_ids = set(features_by_id) | {card["id"] for card in cards}

st.sidebar.markdown("---")
if not cards:
    st.sidebar.info("No parks found with current filter.")
else:
    st.sidebar.caption(f"{len(cards)} parks")
    with st.sidebar.container(height=520):
        for card in cards:
            label = card["name"]
            if session.is_active(card["id"]):
                label = f"▶ {label}"
            if st.button(label, key=f"park_card_{card['id']}", use_container_width=True):
                select_park(card["id"])
            st.caption(card["subtitle"])
            if card["tags"]:
                st.markdown(
                    "".join(f'<span class="park-tag">{t}</span>' for t in card["tags"]),
                    unsafe_allow_html=True,
                )

st.sidebar.markdown("---")
st.sidebar.markdown("**Data Source:** WDPA (Protected Planet), December 2025 release")

# -----------------------
# Main Content
# -----------------------

col_map, col_detail = st.columns([3, 2])

with col_map:
    m = folium.Map(
        location=MAP_CENTER,
        zoom_start=MAP_ZOOM,
        tiles=TILES_URL,
        attr=TILES_ATTR,
        prefer_canvas=True,
    )

    if background_features:
        folium.GeoJson(
            {"type": "FeatureCollection", "features": background_features},
            name="Other protected areas",
            style_function=lambda f: park_style(f["properties"].get("fill_color")),
        ).add_to(m)

    active_id = session.active_park_id
    if interactive_features:
        folium.GeoJson(
            {"type": "FeatureCollection", "features": interactive_features},
            name="Parks",
            style_function=lambda f: park_style(
                f["properties"].get("fill_color"),
                active=f["properties"].get("id") == active_id,
            ),
            tooltip=folium.GeoJsonTooltip(fields=["name", "country"], aliases=["Park", "Country"]),
        ).add_to(m)

    active_parcels = features_by_id.get(active_id) if active_id else None
    if active_parcels:
        bounds = feature_bounds(active_parcels)
        if bounds:
            m.fit_bounds(bounds, max_zoom=8)
            info = fetch_map_info(active_id)
            if info:
                (south, west), (north, east) = bounds
                folium.Marker(
                    location=[(south + north) / 2, east],
                    icon=folium.DivIcon(
                        icon_size=(220, 40),
                        icon_anchor=(-10, 20),
                        html=f"""
                        <div style="background: white; padding: 4px 8px; border-radius: 4px;
                                    box-shadow: 0 1px 4px rgba(0,0,0,0.3); font-family: Arial;">
                            <div style="font-weight: bold; font-size: 13px;">{info['title']}</div>
                            <div style="font-size: 11px; color: #666;">{info['subtitle']}</div>
                        </div>
                        """,
                    ),
                ).add_to(m)

    map_data = st_folium(
        m,
        width=None,
        height=650,
        key="park_map",
        returned_objects=["last_active_drawing", "last_object_clicked"],
    )

    # A click on a polygon selects that park. st_folium keeps returning the last
    # click on every rerun, so only a new click position counts.
    map_data = map_data or {}
    clicked = map_data.get("last_active_drawing")
    click_pos = map_data.get("last_object_clicked") or {}
    if clicked:
        clicked_id = (clicked.get("properties") or {}).get("id")
        click_key = (clicked_id, click_pos.get("lat"), click_pos.get("lng"))
        if clicked_id and click_key != st.session_state["last_map_click"]:
            st.session_state["last_map_click"] = click_key
            select_park(clicked_id)

    st.info(f"📍 Showing {len(features_by_id)} parks | 💡 Click a park on the map or in the list")

with col_detail:
    st.subheader("Park Details")
    if not session.active_park_id:
        st.write("Select a park on the map or from the list.")
    else:
        detail = fetch_park_detail(session.active_park_id)
        if detail:
            st.markdown(f"### {detail['name']}")
            st.caption(detail["country"])
            if detail["tags"]:
                st.markdown(
                    "".join(f'<span class="park-tag">{t}</span>' for t in detail["tags"]),
                    unsafe_allow_html=True,
                )

            st.markdown(f"**Type:** {detail['type_label']}")
            st.markdown(f"**Reported area:** {detail['area_label']}")
            st.markdown(f"**Year established:** {detail['year_label']}")
            st.markdown(f"**Manager:** {detail['manager']}")
            if detail.get("key_species"):
                st.markdown(f"**Key Species:** {detail['key_species']}")

            st.markdown(detail["storymap_hint"])
            st.link_button(
                detail["storymap_button_label"],
                detail["storymap_url"] or "#",
                disabled=not detail["storymap_enabled"],
            )

    summary = fetch_country_summary()
    if summary:
        st.markdown("---")
        st.subheader("Parks per Country")
        df = pd.DataFrame(summary)
        fig = px.bar(
            df,
            x="country",
            y="parks",
            hover_data=["total_area_km2", "earliest_year"],
            color_discrete_sequence=["#8b5a2b"],
        )
        fig.update_layout(height=320, margin=dict(l=10, r=10, t=10, b=10), xaxis_title=None)
        st.plotly_chart(fig, use_container_width=True)


# -----------------------
# Footer
# -----------------------
st.markdown("---")
st.markdown(
    f"""
    <div style="text-align: center;">
        <p><strong>Africa Parks Dashboard</strong></p>
        <p style="font-size: 12px; color: #666;">
            Backend: FastAPI @ {API_BASE} | Data: WDPA CSV + GeoJSON
        </p>
    </div>
    """,
    unsafe_allow_html=True,
)
