#!/usr/bin/env python3
#
# nginx_agent/nginx/nginx_sites.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Per-domain nginx site files."""

from __future__ import annotations

import logging
from pathlib import Path

from ..agent.errors import StorageError
from ..agent.events import ConfigMode
from ..utils.config import Config
from .nginx_constants import SITE_SUFFIX, atomic_write_text
from .nginx_template import render

_log = logging.getLogger(__name__)


class SiteConfigStore:
	"""Writes, removes and probes ``<sites_dir>/<domain>.conf``."""

	def __init__(self, sites_dir: Path, upstream: str, cert_dir: Path, *, sandbox: bool = False):
		self.sites_dir = Path(sites_dir)
		self.upstream = upstream
		self.cert_dir = Path(cert_dir)
		self.sandbox = sandbox

	@classmethod
	def from_config(cls, cfg: Config) -> SiteConfigStore:
		return cls(cfg.nginx_sites_dir, cfg.upstream, cfg.cert_dir, sandbox=cfg.sandbox_mode)

	def path_for(self, domain: str) -> Path:
		return self.sites_dir / f"{domain}{SITE_SUFFIX}"

	def exists(self, domain: str) -> bool:
		return self.path_for(domain).exists()

	def write(self, domain: str, mode: ConfigMode) -> Path:
		"""Render and replace the whole site file for *domain*."""
		mode = ConfigMode(mode)
		path = self.path_for(domain)
		if self.sandbox:
			_log.info("SANDBOX would write nginx config [%s] for %s", mode.value, domain)
			return path

		content = render(mode, domain, self.upstream, self.cert_dir)
		try:
			atomic_write_text(path, content)
		except OSError as exc:
			raise StorageError(f"writing nginx config for {domain} failed: {exc}") from exc
		_log.info("NGINX_CONFIG wrote [%s] config for %s to %s", mode.value, domain, path)
		return path

	def remove(self, domain: str) -> None:
		if self.sandbox:
			_log.info("SANDBOX would remove nginx config for %s", domain)
			return

		path = self.path_for(domain)
		try:
			path.unlink()
		except FileNotFoundError:
			_log.debug("NGINX_CONFIG no config to remove for %s", domain)
			return
		except OSError as exc:
			raise StorageError(f"removing nginx config for {domain} failed: {exc}") from exc
		_log.info("NGINX_CONFIG removed config for %s", domain)
