"""Shared helpers for progression tests"""
from datetime import datetime, timezone


def utc(year=2024, month=5, day=1, hour=12, minute=0):
    """Timezone-aware UTC datetime"""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
