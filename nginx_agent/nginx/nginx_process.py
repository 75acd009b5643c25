#!/usr/bin/env python3
#
# nginx_agent/nginx/nginx_process.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Nginx process control (reload)."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from ..agent.errors import ReloadError
from ..utils.config import DEFAULT_RELOAD_TIMEOUT, Config
from .nginx_constants import run_shell

_log = logging.getLogger(__name__)


class ProxyReloader(Protocol):
	"""Anything that can make the proxy re-read its configuration."""

	async def reload(self) -> None:
		...


class ShellReloader:
	"""Reloads nginx by running a configured shell command.

	The exit code decides success; stdout/stderr are logged either way.
	"""

	def __init__(self, command: str, *, timeout: float = DEFAULT_RELOAD_TIMEOUT, sandbox: bool = False):
		self.command = command
		self.timeout = timeout
		self.sandbox = sandbox

	@classmethod
	def from_config(cls, cfg: Config) -> ShellReloader:
		return cls(cfg.reload_cmd, timeout=cfg.reload_timeout, sandbox=cfg.sandbox_mode)

	async def reload(self) -> None:
		if self.sandbox:
			_log.info("SANDBOX would reload nginx (%s)", self.command)
			return

		_log.info("NGINX_RELOAD running %s", self.command)
		try:
			code, stdout, stderr = await run_shell(self.command, timeout=self.timeout)
		except asyncio.TimeoutError as exc:
			raise ReloadError(f"nginx reload failed: timed out after {self.timeout:g}s") from exc
		except OSError as exc:
			raise ReloadError(f"nginx reload failed: {exc}") from exc

		if stdout.strip():
			_log.info("NGINX_RELOAD stdout: %s", stdout.strip())
		if stderr.strip():
			_log.info("NGINX_RELOAD stderr: %s", stderr.strip())

		if code != 0:
			detail = stderr.strip() or stdout.strip() or "no output"
			raise ReloadError(f"nginx reload failed (exit code {code}): {detail}")
		_log.info("NGINX_RELOAD done")
