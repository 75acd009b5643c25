#!/usr/bin/env python3
#
# nginx_agent/api/webhook.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Health and webhook endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..agent.errors import MalformedInputError
from ..agent.events import parse_event, parse_json
from ..agent.reconciler import Reconciler
from ..agent.signature import SIGNATURE_HEADER, verify_signature
from ..utils.config import Config
from ..utils.rate_limit import RATE_LIMIT_WEBHOOK, limiter
from ..utils.time import uptime_seconds
from .response import error_response, ok_response

_log = logging.getLogger(__name__)

router = APIRouter(tags=["agent"])


@router.get("/health")
async def health(request: Request) -> JSONResponse:
	"""Liveness probe; no authentication."""
	cfg: Config = request.app.state.cfg
	return ok_response(cfg.mode, uptime=uptime_seconds(request.app.state.started_at))


@router.post("/webhook")
@limiter.limit(RATE_LIMIT_WEBHOOK)
async def webhook(request: Request) -> JSONResponse:
	"""
	Receive a signed lifecycle event from the control plane.
	
	The signature is checked against the raw bytes before anything is
	parsed; an unauthenticated body is never interpreted.
	"""
	cfg: Config = request.app.state.cfg
	reconciler: Reconciler = request.app.state.reconciler
	request_id = getattr(request.state, "request_id", "-")

	body = await request.body()
	if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), cfg.agent_secret):
		_log.warning("WEBHOOK_REJECT bad signature (request_id=%s)", request_id)
		return error_response(401, cfg.mode, "invalid signature")

	try:
		event = parse_event(parse_json(body))
	except MalformedInputError as exc:
		_log.warning("WEBHOOK_REJECT %s (request_id=%s)", exc, request_id)
		return error_response(400, cfg.mode, str(exc))

	try:
		await reconciler.handle(event)
	except Exception as exc:
		_log.error("WEBHOOK_FAILED %s %s (request_id=%s): %s", event.event, event.domain, request_id, exc)
		return error_response(500, cfg.mode, str(exc))

	_log.info("WEBHOOK_OK %s %s (request_id=%s)", event.event, event.domain, request_id)
	return ok_response(cfg.mode)
