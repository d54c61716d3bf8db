from __future__ import annotations

import streamlit as st

APP_CSS = """
.block-container { padding-top: 1.5rem; }
.station-card {
  border: 1px solid rgba(49, 51, 63, 0.2);
  border-radius: 8px;
  padding: 0.6rem 0.8rem;
  margin-bottom: 0.4rem;
}
.station-card.selected { border-color: #00aa00; background: rgba(0, 170, 0, 0.06); }
.station-card .price { font-weight: 600; font-size: 1.05rem; }
.station-card .meta { opacity: 0.75; font-size: 0.85rem; }
"""


def apply_app_css() -> None:
    st.markdown(f"<style>\n{APP_CSS}\n</style>", unsafe_allow_html=True)
