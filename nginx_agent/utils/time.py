#!/usr/bin/env python3
#
# nginx_agent/utils/time.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Timezone-aware time utilities."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
	"""Return the current UTC time as a timezone-aware datetime."""
	return datetime.now(timezone.utc)


def parse_utc(s: str) -> Optional[datetime]:
	"""Parse an ISO-8601 timestamp string to a UTC datetime.
	
	Handles both 'Z' suffix and '+00:00' offset notation.
	Returns None for invalid/unparseable or naive (timezone-less) timestamps.
	"""
	if not s:
		return None
	try:
		if s.endswith("Z"):
			s = s[:-1] + "+00:00"
		dt = datetime.fromisoformat(s)
		if dt.tzinfo is None:
			return None
		return dt.astimezone(timezone.utc)
	except (ValueError, TypeError):
		return None


def uptime_seconds(started_monotonic: float) -> float:
	"""Seconds elapsed since a ``time.monotonic()`` reading."""
	return max(0.0, time.monotonic() - started_monotonic)
