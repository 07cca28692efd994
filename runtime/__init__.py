"""
Runtime package for Daylog.

This package contains:
- Stores (the live log file plus its per-day archives)
"""
