"""Personal finance dashboard.

A FastAPI service (``server.py``) and a Streamlit client (``app.py``) over a
shared store, with AI-assisted categorization, receipt reading and spending
insights. See ``process_transactions.py`` and ``insights.py`` for the core
operations.
"""
