#!/usr/bin/env python3
#
# nginx_agent/api/response.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Common API response helpers."""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def ok_response(status: str, **extra: Any) -> JSONResponse:
	"""200 with ``{ok: true, status}`` plus any extra top-level fields."""
	payload: dict[str, Any] = {"ok": True, "status": status}
	if extra:
		payload.update(extra)
	return JSONResponse(payload, status_code=200)


def error_response(code: int, status: str, error: str) -> JSONResponse:
	"""Failure body as the control plane expects it: ``{ok: false, status, error}``."""
	return JSONResponse({"ok": False, "status": status, "error": error}, status_code=code)


def not_found_response() -> JSONResponse:
	return JSONResponse({"error": "not found"}, status_code=404)
