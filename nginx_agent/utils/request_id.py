#!/usr/bin/env python3
#
# nginx_agent/utils/request_id.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Request ID middleware so webhook deliveries can be traced in logs."""

from __future__ import annotations

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Caller-supplied IDs end up in log lines
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
	"""Reuse a sane incoming X-Request-ID or mint one, and echo it back."""

	async def dispatch(self, request: Request, call_next: Callable) -> Response:
		incoming = request.headers.get("X-Request-ID", "")
		request_id = incoming if _REQUEST_ID_RE.fullmatch(incoming) else str(uuid.uuid4())

		request.state.request_id = request_id
		response = await call_next(request)
		response.headers["X-Request-ID"] = request_id
		return response
