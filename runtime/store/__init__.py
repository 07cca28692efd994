"""
Storage abstractions for the Daylog runtime.

Includes:
- LogStore: append-only, timestamp-indexed log with per-day archive rotation
"""
