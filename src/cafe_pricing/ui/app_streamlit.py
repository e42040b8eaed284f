"""
Streamlit operator console for the cafe pricing core.

Features:
- Session calculator with the pricing trace
- Bill builder over an editable session grid, with CSV export
- Rate card explorer
- Rate card validation status
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from cafe_pricing.engine import PricingEngine, DeviceType, SessionStatus
from cafe_pricing.config.settings import get_settings
from cafe_pricing.formatters import format_currency, format_duration


st.set_page_config(
    page_title="Cafe Pricing Console",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    return PricingEngine()


try:
    engine = get_engine()
    settings = get_settings()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


DEVICE_OPTIONS = [d.value for d in DeviceType]


# ============================================================================
# SIDEBAR: Rate card status
# ============================================================================
with st.sidebar:
    st.header("🎮 Rate Card")
    validation = engine.rate_card.validate()
    if validation.valid:
        st.success(f"**{len(engine.rate_card.device_types)} device types priced**")
    else:
        st.error("Rate card has errors")
    for warning in validation.warnings:
        st.warning(warning)

    st.divider()
    st.caption(f"Free tier: {settings.free_tier_minutes} min")
    st.caption(f"Billing increment: {settings.billing_increment_minutes} min")
    st.caption(f"Flat rate: {format_currency(settings.flat_rate_per_player)} per player")


st.title("Cafe Pricing Console")
st.caption(f"v1.0 | {datetime.now().strftime('%Y-%m-%d %H:%M')}")

tab1, tab2, tab3 = st.tabs(["⚡ Session Calculator", "🧾 Bill Builder", "📚 Rate Card"])


# ============================================================================
# TAB 1: SESSION CALCULATOR
# ============================================================================
with tab1:
    col1, col2 = st.columns([1.2, 1.8], gap="large")

    with col1:
        with st.container(border=True):
            device_type = st.selectbox("Device", DEVICE_OPTIONS)
            player_count = st.number_input("Players", min_value=1, value=1, step=1)
            minutes = st.number_input("Minutes played", min_value=0, value=30, step=1)
            hourly_rate = st.number_input("Device hourly rate (fallback)", min_value=0.0, value=0.0, step=10.0)

    with col2:
        charge = engine.quote(device_type, player_count, minutes, hourly_rate)

        m1, m2, m3 = st.columns(3)
        m1.metric("Price", format_currency(charge.amount))
        m2.metric("Billed", format_duration(charge.billed_minutes or 0))
        m3.metric("Hourly Rate", format_currency(engine.hourly_rate_for(device_type, player_count)))

        for warning in charge.warnings:
            st.warning(warning)

        with st.expander("🔍 Pricing Trace", expanded=True):
            for t in charge.trace:
                if t.value:
                    st.caption(f"**{t.step}**: {t.description} = `{t.value}`")
                else:
                    st.caption(f"**{t.step}**: {t.description}")


# ============================================================================
# TAB 2: BILL BUILDER
# ============================================================================
with tab2:
    st.subheader("Sessions on this bill")

    if 'bill_rows' not in st.session_state:
        st.session_state.bill_rows = pd.DataFrame([
            {'device_type': 'PS5', 'player_count': 2, 'status': SessionStatus.ENDED.value,
             'duration': 40, 'cost': None, 'hourly_rate': 0.0},
        ])

    edited_df = st.data_editor(
        st.session_state.bill_rows,
        use_container_width=True,
        num_rows="dynamic",
        column_config={
            "device_type": st.column_config.SelectboxColumn("Device", options=DEVICE_OPTIONS, required=True),
            "player_count": st.column_config.NumberColumn("Players", min_value=1, step=1),
            "status": st.column_config.SelectboxColumn("Status", options=[s.value for s in SessionStatus]),
            "duration": st.column_config.NumberColumn("Duration (min)", min_value=0, step=1),
            "cost": st.column_config.NumberColumn("Stored Cost", min_value=0.0),
            "hourly_rate": st.column_config.NumberColumn("Hourly Rate", min_value=0.0),
        },
        hide_index=True,
        key="bill_editor"
    )

    records = edited_df.replace({float('nan'): None}).to_dict(orient="records")
    summary = engine.summarize(records)

    m1, m2 = st.columns(2)
    m1.metric("Bill Total", format_currency(summary.total))
    m2.metric("Sessions", len(summary.charges) - summary.skipped)

    for warning in summary.warnings:
        st.warning(warning)

    export_df = pd.DataFrame([{
        'Device': c.device_type,
        'Players': c.player_count,
        'Minutes': c.actual_minutes,
        'Billed': c.billed_minutes,
        'Source': c.source,
        'Amount': c.amount,
    } for c in summary.charges])

    st.dataframe(export_df, use_container_width=True, hide_index=True)
    st.download_button(
        "📥 CSV",
        data=export_df.to_csv(index=False),
        file_name=f"bill_{datetime.now().strftime('%Y%m%d_%H%M')}.csv",
        mime="text/csv",
    )


# ============================================================================
# TAB 3: RATE CARD
# ============================================================================
with tab3:
    st.subheader("📚 Rate Card")
    card_df = engine.rate_card.to_frame()
    device_filter = st.selectbox("Device", ["ALL"] + engine.rate_card.device_types, label_visibility="collapsed")
    if device_filter != "ALL":
        card_df = card_df[card_df['device_type'] == device_filter]
    st.dataframe(card_df, use_container_width=True, hide_index=True)
    st.caption(
        f"Past 60 minutes the hourly rate is extended linearly. "
        f"{', '.join(settings.flat_rate_device_types)} is billed "
        f"{format_currency(settings.flat_rate_per_player)} per player."
    )
    if st.button("🔄 Reload Rate Card"):
        engine.reload_data()
        st.toast("Rate card reloaded")
        st.rerun()
