#!/usr/bin/env python3
#
# nginx_agent/utils/config.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Configuration loading and agent-level defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

_log = logging.getLogger(__name__)


class ConfigValidationError(Exception):
	"""Raised when critical configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_PORT = 7842
DEFAULT_CERT_DIR = "/etc/ssl/changerawr"
DEFAULT_NGINX_DIR = "/etc/nginx/sites-enabled"
DEFAULT_RELOAD_CMD = "nginx -s reload"
DEFAULT_UPSTREAM = "http://localhost:3000"
DEFAULT_FETCH_TIMEOUT = 10.0  # seconds
DEFAULT_RELOAD_TIMEOUT = 30.0  # seconds

# Docker images ship their settings here instead of a .env next to the code
SYSTEM_CONF_FILE = Path("/etc/chragent.conf")

_TRUTHY = ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
	"""Resolved runtime configuration, built once and handed to every component."""
	agent_secret: str
	control_plane_url: str
	internal_secret: str
	cert_dir: Path
	nginx_sites_dir: Path
	host: str = "0.0.0.0"
	port: int = DEFAULT_PORT
	reload_cmd: str = DEFAULT_RELOAD_CMD
	upstream: str = DEFAULT_UPSTREAM
	sandbox_mode: bool = False
	log_level: str = "INFO"
	fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
	reload_timeout: float = DEFAULT_RELOAD_TIMEOUT

	@property
	def mode(self) -> str:
		"""Agent mode as reported to the control plane."""
		return "sandbox" if self.sandbox_mode else "live"


def _parse_value(raw: str) -> str:
	"""Extract value, respecting quotes and stripping inline comments.
	
	Handles quoted values correctly (e.g., AGENT_SECRET="abc#123")
	and only strips comments from unquoted values.
	"""
	raw = raw.strip()
	if raw and raw[0] in ('"', "'"):
		quote = raw[0]
		end = raw.find(quote, 1)
		if end != -1:
			return raw[1:end]
		# Unterminated quote - fall through to unquoted handling
	if " #" in raw:
		raw = raw.split(" #", 1)[0]
	return raw.strip()


def load_dotenv(dotenv_path: Path) -> bool:
	"""Load simple KEY=VALUE pairs from a dotenv-style file.

	Behavior:
	- Ignores blank lines and comments (# ...)
	- Handles `export KEY=VALUE` syntax (common in shell-sourced files)
	- Respects quoted values (doesn't strip # inside quotes)
	- Does not override already-set environment variables

	Returns True when the file existed and was read.
	"""
	if not dotenv_path.is_file():
		return False
	for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
		line = raw_line.strip()
		if not line or line.startswith("#"):
			continue
		if "=" not in line:
			continue
		key, value = line.split("=", 1)
		key = key.strip()
		if key.startswith("export "):
			key = key[7:].strip()
		if not key:
			continue
		os.environ.setdefault(key, _parse_value(value))
	return True


def _require(key: str) -> str:
	value = os.getenv(key, "").strip()
	if not value:
		raise ConfigValidationError(f"{key} is required")
	return value


def _parse_float(key: str, default: float) -> float:
	raw = os.getenv(key, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError as exc:
		raise ConfigValidationError(f"{key} must be a number, got {raw!r}") from exc
	if value <= 0:
		raise ConfigValidationError(f"{key} must be positive, got {raw!r}")
	return value


def load_config(dotenv_paths: tuple[Path, ...] | None = None) -> Config:
	"""Load configuration from environment variables (optionally via settings.env)."""
	if dotenv_paths is None:
		project_root = Path(__file__).resolve().parents[2]
		dotenv_paths = (project_root / "settings.env", SYSTEM_CONF_FILE)
	for path in dotenv_paths:
		if load_dotenv(path):
			_log.debug("Loaded settings from %s", path)

	raw_port = os.getenv("AGENT_PORT", str(DEFAULT_PORT)).strip()
	try:
		port = int(raw_port)
	except ValueError as exc:
		raise ConfigValidationError(f"AGENT_PORT must be an integer, got {raw_port!r}") from exc
	if not 1 <= port <= 65535:
		raise ConfigValidationError(f"AGENT_PORT out of range: {port}")

	allowed_levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
	log_level = os.getenv("LOG_LEVEL", "INFO").upper()
	if log_level not in allowed_levels:
		log_level = "INFO"

	cert_dir = os.getenv("CERT_DIR", DEFAULT_CERT_DIR).strip()
	nginx_dir = os.getenv("NGINX_DIR", DEFAULT_NGINX_DIR).strip()
	if not cert_dir:
		raise ConfigValidationError("CERT_DIR must not be empty")
	if not nginx_dir:
		raise ConfigValidationError("NGINX_DIR must not be empty")

	return Config(
		agent_secret=_require("AGENT_SECRET"),
		control_plane_url=_require("CHANGERAWR_URL").rstrip("/"),
		internal_secret=_require("INTERNAL_API_SECRET"),
		cert_dir=Path(cert_dir),
		nginx_sites_dir=Path(nginx_dir),
		host=os.getenv("AGENT_HOST", "0.0.0.0").strip() or "0.0.0.0",
		port=port,
		reload_cmd=os.getenv("NGINX_RELOAD_CMD", DEFAULT_RELOAD_CMD).strip() or DEFAULT_RELOAD_CMD,
		upstream=os.getenv("UPSTREAM", DEFAULT_UPSTREAM).strip() or DEFAULT_UPSTREAM,
		sandbox_mode=os.getenv("SANDBOX_MODE", "").strip().lower() in _TRUTHY,
		log_level=log_level,
		fetch_timeout=_parse_float("FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
		reload_timeout=_parse_float("NGINX_RELOAD_TIMEOUT", DEFAULT_RELOAD_TIMEOUT),
	)
