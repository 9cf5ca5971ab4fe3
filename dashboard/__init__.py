"""Streamlit dashboard views. Launched with `streamlit run dashboard.py`."""
