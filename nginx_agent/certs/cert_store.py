#!/usr/bin/env python3
#
# nginx_agent/certs/cert_store.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""On-disk certificate storage with atomic replace.

Layout per domain::

	<cert_dir>/<domain>/privkey.pem     0600
	<cert_dir>/<domain>/fullchain.pem   0644
	<cert_dir>/<domain>/cert.pem        0644
	<cert_dir>/<domain>/expires.txt     0644

All four artefacts are first written to ``<name>.tmp`` beside their final
name and only renamed once every temp file is complete, so nginx never reads
a partially written file. A failure before the renames leaves the previous
certificate set untouched.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from cryptography import x509

from ..agent.errors import InvalidBundleError, StorageError
from ..agent.events import CertificateBundle
from ..utils.config import Config

_log = logging.getLogger(__name__)

PRIVKEY_FILE = "privkey.pem"
FULLCHAIN_FILE = "fullchain.pem"
CERT_FILE = "cert.pem"
EXPIRES_FILE = "expires.txt"
TMP_SUFFIX = ".tmp"

_KEY_MODE = 0o600
_PUBLIC_MODE = 0o644

_CERT_MARKER = "BEGIN CERTIFICATE"
_PEM_MARKER = "BEGIN"


def validate_bundle(bundle: CertificateBundle) -> None:
	"""Reject bundles with empty PEM fields or missing PEM markers."""
	missing = [
		name for name, value in (
			("privateKey", bundle.private_key),
			("certificate", bundle.certificate),
			("fullChain", bundle.full_chain),
		)
		if not value or not value.strip()
	]
	if missing:
		raise InvalidBundleError(f"invalid certificate bundle: empty {', '.join(missing)}")
	if not bundle.domain:
		raise InvalidBundleError("invalid certificate bundle: no domain")
	if _CERT_MARKER not in bundle.full_chain:
		raise InvalidBundleError("invalid fullChain format - missing BEGIN CERTIFICATE")
	if _CERT_MARKER not in bundle.certificate:
		raise InvalidBundleError("invalid certificate format - missing BEGIN CERTIFICATE")
	if _PEM_MARKER not in bundle.private_key or "PRIVATE KEY" not in bundle.private_key:
		raise InvalidBundleError("invalid privateKey format - missing BEGIN ... PRIVATE KEY marker")


def _describe_leaf(pem: str) -> str | None:
	"""Best-effort summary of the leaf certificate for logs."""
	try:
		cert = x509.load_pem_x509_certificate(pem.encode("utf-8"))
	except ValueError:
		return None
	expires_at = cert.not_valid_after_utc
	days_left = (expires_at - datetime.now(timezone.utc)).days
	return f"serial={format(cert.serial_number, 'x')} not_after={expires_at.isoformat()} days_left={days_left}"


def _write_private(path: Path, content: str, mode: int) -> None:
	"""Write *content* to *path* with exact permission bits and fsync."""
	fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
	with os.fdopen(fd, "w", encoding="utf-8") as f:
		# O_CREAT mode is filtered by umask and ignored for existing files
		os.fchmod(f.fileno(), mode)
		f.write(content)
		f.flush()
		os.fsync(f.fileno())


def _fsync_dir(path: Path) -> None:
	dir_fd = os.open(str(path), os.O_RDONLY)
	try:
		os.fsync(dir_fd)
	finally:
		os.close(dir_fd)


class CertificateStore:
	"""Persists and removes per-domain certificate material."""

	def __init__(self, cert_dir: Path, *, sandbox: bool = False):
		if not str(cert_dir).strip() or Path(cert_dir) == Path(""):
			raise StorageError("certificate directory is not configured")
		self.cert_dir = Path(cert_dir)
		self.sandbox = sandbox

	@classmethod
	def from_config(cls, cfg: Config) -> CertificateStore:
		return cls(cfg.cert_dir, sandbox=cfg.sandbox_mode)

	def domain_dir(self, domain: str) -> Path:
		return self.cert_dir / domain

	def write(self, bundle: CertificateBundle) -> Path:
		"""Validate and atomically place the bundle; returns the domain directory."""
		validate_bundle(bundle)

		if self.sandbox:
			_log.info(
				"SANDBOX would write certs for %s (expires %s)",
				bundle.domain, bundle.expires_at or "unknown",
			)
			return self.domain_dir(bundle.domain)

		domain_dir = self.domain_dir(bundle.domain)
		# Order matters: the key lands before the chain that references it
		artefacts = (
			(PRIVKEY_FILE, bundle.private_key, _KEY_MODE),
			(FULLCHAIN_FILE, bundle.full_chain, _PUBLIC_MODE),
			(CERT_FILE, bundle.certificate, _PUBLIC_MODE),
			(EXPIRES_FILE, bundle.expires_at, _PUBLIC_MODE),
		)
		temps = [(domain_dir / (name + TMP_SUFFIX), domain_dir / name) for name, _, _ in artefacts]

		try:
			domain_dir.mkdir(parents=True, exist_ok=True)
			for (tmp_path, _), (_, content, mode) in zip(temps, artefacts):
				_write_private(tmp_path, content, mode)
			for tmp_path, final_path in temps:
				os.replace(tmp_path, final_path)
				_log.debug("CERT_WRITE renamed %s", final_path)
			_fsync_dir(domain_dir)
		except OSError as exc:
			_log.error("CERT_WRITE failed for %s: %s", bundle.domain, exc)
			raise StorageError(f"writing certificates for {bundle.domain} failed: {exc}") from exc
		finally:
			for tmp_path, _ in temps:
				with contextlib.suppress(OSError):
					tmp_path.unlink(missing_ok=True)

		fullchain = domain_dir / FULLCHAIN_FILE
		if not fullchain.is_file():
			raise StorageError(f"certificate files were not written to {domain_dir}")

		_log.info(
			"CERT_WRITE wrote certs for %s (expires %s, fullchain=%d bytes on disk)",
			bundle.domain, bundle.expires_at or "unknown", fullchain.stat().st_size,
		)
		summary = _describe_leaf(bundle.certificate)
		if summary:
			_log.info("CERT_WRITE %s leaf %s", bundle.domain, summary)
		else:
			_log.warning("CERT_WRITE %s leaf certificate could not be parsed", bundle.domain)
		return domain_dir

	def remove(self, domain: str) -> None:
		"""Delete the domain's certificate directory; absence is not an error."""
		if self.sandbox:
			_log.info("SANDBOX would remove certs for %s", domain)
			return

		domain_dir = self.domain_dir(domain)
		try:
			shutil.rmtree(domain_dir)
		except FileNotFoundError:
			_log.debug("CERT_REMOVE nothing to remove for %s", domain)
			return
		except OSError as exc:
			raise StorageError(f"removing certificates for {domain} failed: {exc}") from exc
		_log.info("CERT_REMOVE removed certs for %s", domain)
