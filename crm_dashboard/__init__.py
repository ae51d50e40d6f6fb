"""
Core package for the innovation CRM dashboard.

Submodules provide the Supabase data layer, client-side aggregation, and the
Streamlit rendering helpers that are orchestrated by the top-level `app.py`.
"""
