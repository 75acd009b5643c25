#!/usr/bin/env python3
#
# nginx_agent/utils/rate_limit.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Rate limiting configuration using slowapi."""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

# The control plane is the only legitimate caller; bursts happen on bulk renewals
RATE_LIMIT_WEBHOOK = "300/minute"

# Global limiter instance
limiter = Limiter(key_func=get_remote_address)

__all__ = [
	"RATE_LIMIT_WEBHOOK",
	"limiter",
]
