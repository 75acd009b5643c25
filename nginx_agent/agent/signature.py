#!/usr/bin/env python3
#
# nginx_agent/agent/signature.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""HMAC signatures for webhook bodies."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "x-chr-signature"
SIGNATURE_PREFIX = "sha256="


def sign_body(body: bytes, secret: str) -> str:
	"""Return the ``sha256=<hex>`` signature the control plane sends for *body*."""
	digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
	return SIGNATURE_PREFIX + digest


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
	"""Check a claimed signature against the body.
	
	Uses constant-time comparison to prevent timing attacks. Missing,
	malformed and mismatched signatures all return False; never raises.
	"""
	if not signature or not secret:
		return False
	try:
		expected = sign_body(body, secret)
		return hmac.compare_digest(signature.encode("ascii"), expected.encode("ascii"))
	except (UnicodeEncodeError, TypeError):
		return False
