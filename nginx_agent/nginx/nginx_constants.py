#!/usr/bin/env python3
#
# nginx_agent/nginx/nginx_constants.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Nginx constants and shared utilities."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import IO

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SITE_SUFFIX = ".conf"
SITE_FILE_MODE = 0o644

ACME_CHALLENGE_PATH = "/.well-known/acme-challenge/"

# Named so it cannot collide with other shared caches in the same nginx
SSL_SESSION_CACHE = "shared:CHRAGENT:10m"

SSL_PROTOCOLS = "TLSv1.2 TLSv1.3"
SSL_CIPHERS = ":".join((
	"ECDHE-ECDSA-AES128-GCM-SHA256",
	"ECDHE-RSA-AES128-GCM-SHA256",
	"ECDHE-ECDSA-AES256-GCM-SHA384",
	"ECDHE-RSA-AES256-GCM-SHA384",
	"ECDHE-ECDSA-CHACHA20-POLY1305",
	"ECDHE-RSA-CHACHA20-POLY1305",
))
# Two years; no includeSubDomains, no preload
HSTS_HEADER = "max-age=63072000"


# ---------------------------------------------------------------------------
# Shared Utility Functions
# ---------------------------------------------------------------------------

async def run_shell(command: str, *, timeout: float) -> tuple[int, str, str]:
	"""Run a command through the host shell and return (code, stdout, stderr).

	Raises asyncio.TimeoutError when the command outlives *timeout*; the
	process is killed before the error propagates.
	"""
	proc: asyncio.subprocess.Process | None = None
	try:
		proc = await asyncio.create_subprocess_shell(
			command,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.PIPE,
		)
		stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
		code = proc.returncode
		assert code is not None, "returncode should be set after communicate()"
		return code, stdout.decode("utf-8", errors="replace"), stderr.decode("utf-8", errors="replace")
	finally:
		# Cleanup: kill leftover process regardless of exception type
		if proc is not None and proc.returncode is None:
			with contextlib.suppress(Exception):
				proc.kill()
				await proc.wait()


@contextlib.contextmanager
def atomic_write(path: Path, *, mode: int = SITE_FILE_MODE, encoding: str = "utf-8") -> Generator[IO[str], None, None]:
	"""Context manager for atomic file writes with fsync.
	
	Yields a file handle for writing. On successful exit, the file is
	fsync'd, given *mode* and atomically moved to the target path.
	
	Example:
		with atomic_write(path) as f:
			f.write("server {\n")
	"""
	fd, tmp_path = tempfile.mkstemp(
		dir=str(path.parent),
		prefix=f".{path.name}.",
		suffix=".tmp",
	)
	try:
		with os.fdopen(fd, "w", encoding=encoding) as f:
			yield f
			f.flush()
			os.fchmod(f.fileno(), mode)
			os.fsync(f.fileno())
		os.replace(tmp_path, path)
		# Sync parent directory to ensure the rename is durable
		dir_fd = os.open(str(path.parent), os.O_RDONLY)
		try:
			os.fsync(dir_fd)
		finally:
			os.close(dir_fd)
	finally:
		with contextlib.suppress(OSError):
			if os.path.exists(tmp_path):
				os.unlink(tmp_path)


def atomic_write_text(path: Path, content: str, *, mode: int = SITE_FILE_MODE) -> None:
	"""Atomically write UTF-8 text to a file (convenience wrapper)."""
	with atomic_write(path, mode=mode) as f:
		f.write(content)


__all__ = [
	"SITE_SUFFIX",
	"SITE_FILE_MODE",
	"ACME_CHALLENGE_PATH",
	"SSL_SESSION_CACHE",
	"SSL_PROTOCOLS",
	"SSL_CIPHERS",
	"HSTS_HEADER",
	"run_shell",
	"atomic_write",
	"atomic_write_text",
]
