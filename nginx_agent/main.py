#!/usr/bin/env python3
#
# nginx_agent/main.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""FastAPI application factory and startup lifecycle wiring."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .agent.reconciler import BundleFetcher, build_reconciler
from .api import webhook as webhook_api
from .api.response import not_found_response
from .nginx.nginx_process import ProxyReloader
from .utils.config import Config, load_config
from .utils.rate_limit import limiter
from .utils.request_id import RequestIDMiddleware

_log = logging.getLogger(__name__)

# ANSI color codes for log levels (if TTY)
_LOG_COLORS = {
	"DEBUG": "\033[36m",    # Cyan
	"INFO": "\033[32m",     # Green
	"WARNING": "\033[33m",  # Yellow
	"ERROR": "\033[31m",    # Red
	"CRITICAL": "\033[35m", # Magenta
}
_RESET = "\033[0m"


class _ColoredFormatter(logging.Formatter):
	"""Custom formatter that adds color to log levels in TTY."""
	
	def format(self, record):
		orig_levelname = record.levelname
		levelname = orig_levelname
		if levelname in _LOG_COLORS:
			record.levelname = f"{_LOG_COLORS[levelname]}{orig_levelname:<8}{_RESET}"
		else:
			record.levelname = f"{orig_levelname:<8}"
		try:
			return super().format(record)
		finally:
			record.levelname = orig_levelname


def _setup_logging(log_level: str) -> None:
	"""Configure unified logging for the entire agent."""
	level = getattr(logging, log_level, logging.INFO)

	if sys.stdout.isatty():
		formatter: logging.Formatter = _ColoredFormatter(
			fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
			datefmt="%Y-%m-%d %H:%M:%S",
		)
	else:
		formatter = logging.Formatter(
			fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
			datefmt="%Y-%m-%d %H:%M:%S",
		)

	# force=True removes any pre-existing handlers (e.g. from uvicorn)
	logging.basicConfig(
		level=level,
		handlers=[logging.StreamHandler(sys.stdout)],
		force=True,
	)
	for handler in logging.root.handlers:
		handler.setFormatter(formatter)

	for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
		logger = logging.getLogger(name)
		logger.handlers.clear()
		logger.setLevel(level)
		logger.propagate = True

	# Quiet down noisy third-party libraries
	for name in ("httpcore", "httpx"):
		logging.getLogger(name).setLevel(logging.WARNING)


@asynccontextmanager
async def _lifespan(app: FastAPI):
	"""Log the effective setup once the server is up."""
	cfg: Config = app.state.cfg
	_log.info("=== %s MODE ===", cfg.mode.upper())
	_log.info("listening on %s:%d", cfg.host, cfg.port)
	_log.info("upstream:  %s", cfg.upstream)
	_log.info("cert dir:  %s", cfg.cert_dir)
	_log.info("nginx dir: %s", cfg.nginx_sites_dir)
	if cfg.sandbox_mode:
		_log.info("*** No files will be written and nginx will not be reloaded ***")
	elif not cfg.nginx_sites_dir.is_dir():
		_log.warning("nginx sites directory %s does not exist", cfg.nginx_sites_dir)
	
	yield
	
	_log.info("Agent shutdown complete")


async def _not_found_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
	"""Unknown paths and wrong methods look the same to callers."""
	if exc.status_code in (404, 405):
		return not_found_response()
	return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


def create_app(
	cfg: Config | None = None,
	*,
	fetcher: BundleFetcher | None = None,
	reloader: ProxyReloader | None = None,
) -> FastAPI:
	"""Application factory for the certificate agent."""
	if cfg is None:
		cfg = load_config()
		_setup_logging(cfg.log_level)
	
	app = FastAPI(
		title="nginx-cert-agent",
		description="Reconciles nginx TLS sites with control-plane certificate events",
		version="0.1.0",
		lifespan=_lifespan,
		docs_url=None,
		redoc_url=None,
		openapi_url=None,
		redirect_slashes=False,
	)
	
	# Store config and collaborators in app state
	app.state.cfg = cfg
	app.state.started_at = time.monotonic()
	app.state.reconciler = build_reconciler(cfg, fetcher=fetcher, reloader=reloader)
	
	# ─── MIDDLEWARE ──────────────────────────────────────────
	app.add_middleware(RequestIDMiddleware)
	
	# Rate limiting
	app.state.limiter = limiter
	app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
	app.add_exception_handler(StarletteHTTPException, _not_found_handler)
	
	# ─── ROUTES ──────────────────────────────────────────────
	app.include_router(webhook_api.router)
	
	return app
