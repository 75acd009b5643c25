#!/usr/bin/env python3
#
# nginx_agent/certs/cert_fetcher.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Certificate retrieval from the control plane's internal API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..agent.errors import FetchTimeoutError, MalformedResponseError, RemoteError
from ..agent.events import CertificateBundle
from ..utils.config import DEFAULT_FETCH_TIMEOUT, Config
from ..utils.time import parse_utc, utcnow

_log = logging.getLogger(__name__)

INTERNAL_SECRET_HEADER = "x-internal-secret"

# Error bodies are echoed into exceptions; keep them readable
_BODY_EXCERPT = 500


def _excerpt(text: str) -> str:
	return text if len(text) <= _BODY_EXCERPT else text[:_BODY_EXCERPT] + "..."


class CertificateFetcher:
	"""Fetches the current certificate bundle for a domain.

	No retries are performed; a failed fetch surfaces to the caller and the
	control plane redelivers the event.
	"""

	def __init__(self, base_url: str, internal_secret: str, timeout: float = DEFAULT_FETCH_TIMEOUT):
		self.base_url = base_url.rstrip("/")
		self.internal_secret = internal_secret
		self.timeout = timeout

	@classmethod
	def from_config(cls, cfg: Config) -> CertificateFetcher:
		return cls(cfg.control_plane_url, cfg.internal_secret, cfg.fetch_timeout)

	def cert_url(self, domain: str) -> str:
		return f"{self.base_url}/api/internal/cert/{quote(domain, safe='')}"

	async def fetch(self, domain: str) -> CertificateBundle:
		"""Return the bundle for *domain*.

		Raises:
			RemoteError: non-200 status or transport failure
			MalformedResponseError: body is not a JSON object of bundle shape
			FetchTimeoutError: no answer within ``timeout`` seconds
		"""
		url = self.cert_url(domain)
		_log.info("CERT_FETCH requesting certificate for %s", domain)

		async with httpx.AsyncClient(timeout=self.timeout) as client:
			try:
				resp = await client.get(url, headers={INTERNAL_SECRET_HEADER: self.internal_secret})
			except httpx.TimeoutException as exc:
				raise FetchTimeoutError(
					f"request to control plane timed out after {self.timeout:g}s"
				) from exc
			except httpx.HTTPError as exc:
				raise RemoteError(f"control plane unreachable: {exc}") from exc

		if resp.status_code != 200:
			body = _excerpt(resp.text)
			raise RemoteError(
				f"control plane returned {resp.status_code}: {body}",
				status=resp.status_code,
				body=body,
			)

		try:
			payload = resp.json()
		except ValueError as exc:
			raise MalformedResponseError(f"invalid JSON from control plane: {_excerpt(resp.text)}") from exc
		if not isinstance(payload, dict):
			raise MalformedResponseError(f"expected a JSON object, got {type(payload).__name__}")

		try:
			bundle = CertificateBundle.model_validate(payload)
		except ValidationError as exc:
			raise MalformedResponseError(f"unexpected certificate bundle shape: {exc.error_count()} errors") from exc

		if bundle.domain and bundle.domain.lower().rstrip(".") != domain.lower().rstrip("."):
			raise MalformedResponseError(
				f"control plane returned a bundle for {bundle.domain!r}, requested {domain!r}"
			)
		if not bundle.domain:
			# The caller already trusts the requested name
			_log.warning("CERT_FETCH response had no domain field, using requested domain %s", domain)
			bundle = bundle.model_copy(update={"domain": domain})

		expires_at = parse_utc(bundle.expires_at)
		if expires_at is None:
			_log.warning("CERT_FETCH %s expiresAt %r is not an ISO-8601 timestamp", bundle.domain, bundle.expires_at)
		elif expires_at <= utcnow():
			_log.warning("CERT_FETCH %s bundle already expired at %s", bundle.domain, bundle.expires_at)

		_log.info(
			"CERT_FETCH received bundle for %s (expires %s, fullchain=%d bytes)",
			bundle.domain,
			bundle.expires_at or "unknown",
			len(bundle.full_chain),
		)
		return bundle
