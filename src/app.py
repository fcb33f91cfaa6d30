"""
EcoChoice Result Curation: Streamlit review UI

Upload a saved Open Food Facts search response (.json) and inspect what the
curation pipeline makes of it, stage by stage, down to the sustainability
breakdown of a single product.
No network calls are made; the page only works on uploaded files.

Run with:
    streamlit run src/app.py
"""

import json
import logging
from functools import partial

import streamlit as st

from ecochoice.curation import (
    curate,
    dedupe,
    dedupe_similar,
    quality_score,
    StageCounter,
    DEFAULT_COUNTRY_TAG,
    DEFAULT_RESULT_CAP,
    DEFAULT_FUZZY_THRESHOLD,
    TIE_BREAK_STABLE,
    TIE_BREAK_QUALITY,
)
from ecochoice.export import results_frame, curation_summary, export_excel
from ecochoice.records import parse_search_response
from ecochoice.sustainability import assess, grade_badge, icon_display_count

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="EcoChoice Curation",
    page_icon="🌱",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.title("🌱 EcoChoice Search Result Curation")

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.header("⚙️ Settings")
country_tag = st.sidebar.text_input(
    "Country tag",
    value=DEFAULT_COUNTRY_TAG,
    help="Products must carry this countries_tags value, e.g. en:singapore",
)
cap = st.sidebar.slider("Result cap", min_value=1, max_value=50, value=DEFAULT_RESULT_CAP, step=1)
tie_break = st.sidebar.radio(
    "Tie-break on equal scores",
    options=[TIE_BREAK_STABLE, TIE_BREAK_QUALITY],
    format_func=lambda p: "Keep API order" if p == TIE_BREAK_STABLE else "Prefer complete records",
)

st.sidebar.divider()
use_fuzzy = st.sidebar.checkbox(
    "🔧 Merge similar names",
    value=False,
    help="Also merge names above a similarity threshold. May hide genuinely different products.",
)
fuzzy_threshold = DEFAULT_FUZZY_THRESHOLD
if use_fuzzy:
    fuzzy_threshold = st.sidebar.slider("Similarity threshold", 0.5, 1.0, DEFAULT_FUZZY_THRESHOLD, 0.01)

st.sidebar.markdown("**Ring colors:**")
st.sidebar.markdown("🟢 ≥80 · 🟩 ≥60 · 🟡 ≥40 · 🟠 ≥20 · 🔴 <20 · ⚪ no data")

# =========================================================================
# Upload
# =========================================================================
upload = st.file_uploader("Upload search response (.json)", type=["json"])
if upload is None:
    st.info("Save a search response from the Open Food Facts API and upload it here.")
    st.stop()

try:
    payload = json.load(upload)
except (json.JSONDecodeError, UnicodeDecodeError) as e:
    st.error(f"Failed to parse JSON: {e}")
    st.stop()

products = parse_search_response(payload)
if not products:
    st.warning("No products in this response.")
    st.stop()

# =========================================================================
# Curate
# =========================================================================
dedupe_fn = partial(dedupe_similar, threshold=fuzzy_threshold) if use_fuzzy else dedupe
counter = StageCounter()
curated = curate(
    products,
    country_filter=country_tag.strip(),
    cap=cap,
    tie_break=tie_break,
    dedupe_fn=dedupe_fn,
    trace=counter,
)
summary = curation_summary(counter, cap)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Received", summary['received'])
c2.metric("Eligible", summary['eligible'], f"{summary['eligible_rate']:.1f}%")
c3.metric("Duplicates removed", summary['duplicates_removed'])
c4.metric("Returned", summary['returned'])

if not curated:
    st.warning("No products passed the filters. Try another country tag.")
    st.stop()

st.subheader("📋 Curated Results")


def color_ring(val):
    return f'background-color: {val}; color: #fff' if val else ''


df_results = results_frame(curated)
st.dataframe(
    df_results.style.map(color_ring, subset=['ring_color']),
    use_container_width=True, hide_index=True,
)

st.download_button(
    label="📥 Download Curated Results",
    data=export_excel(curated, summary),
    file_name="curated_results.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    use_container_width=True,
)

# =========================================================================
# Product detail
# =========================================================================
st.divider()
st.subheader("🔍 Sustainability Detail")

labels = [f"{i}. {r.product_name} ({r.code})" for i, r in enumerate(curated, 1)]
choice = st.selectbox("Product", options=range(len(curated)), format_func=lambda i: labels[i])
record = curated[choice]
assessment = assess(record)


def icons(count, symbol):
    shown = icon_display_count(count)
    return "N/A" if shown is None else symbol * shown


col_left, col_right = st.columns([1, 2])
with col_left:
    if record.image_url:
        st.image(record.image_url, width=180)
    st.markdown(f"**{record.product_name or 'Unnamed product'}**")
    st.caption(record.primary_brand or "Unknown brand")
    st.caption(f"Quantity: {record.quantity or 'N/A'}")
    st.markdown(
        f"{grade_badge('Nutri', record.nutrition_grade)} {grade_badge('Eco', record.ecoscore_grade)}",
        unsafe_allow_html=True,
    )
    st.caption(f"Record quality: {quality_score(record)}/9")

with col_right:
    overall = assessment.aggregate_score
    st.markdown(
        f"<div style='border:6px solid {assessment.ring_color};border-radius:50%;width:90px;"
        f"height:90px;display:flex;align-items:center;justify-content:center;font-size:28px'>"
        f"{overall if overall is not None else 'N/A'}</div>",
        unsafe_allow_html=True,
    )
    st.markdown(assessment.overall_description)
    st.markdown(f"**Eco Score** {icons(assessment.eco_icons, '🍃')}  \n{assessment.eco_description}")
    st.markdown(f"**Carbon Score** {icons(assessment.carbon_icons, '🌎')}  \n{assessment.carbon_description}")
    st.markdown(f"**Packaging** {icons(assessment.packaging_icons, '♻️')}  \n{assessment.packaging_description}")
