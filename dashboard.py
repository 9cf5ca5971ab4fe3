"""Streamlit entry point: streamlit run dashboard.py"""
from dashboard.app import main

main()
