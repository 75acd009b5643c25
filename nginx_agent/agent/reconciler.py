#!/usr/bin/env python3
#
# nginx_agent/agent/reconciler.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Lifecycle event handling.

Per-domain state is never cached: whether a domain is absent, pending or
active is read from the certificate and site directories on every event.
Each event maps to a fixed sequence of steps that run one after another;
the first failure stops the sequence and is raised as ReconcileError.
Completed steps are not rolled back. Every write is atomic and every
remove tolerates absence, so redelivering the same event is safe.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Protocol, TypeVar

from ..certs.cert_fetcher import CertificateFetcher
from ..certs.cert_store import CertificateStore
from ..nginx.nginx_process import ProxyReloader, ShellReloader
from ..nginx.nginx_sites import SiteConfigStore
from ..utils.config import Config
from .errors import ReconcileError
from .events import (
	CertIssued,
	CertificateBundle,
	CertRenewed,
	CertRevoked,
	ConfigMode,
	DomainAdded,
	DomainRemoved,
	LifecycleEvent,
)

_log = logging.getLogger(__name__)

T = TypeVar("T")


class BundleFetcher(Protocol):
	async def fetch(self, domain: str) -> CertificateBundle:
		...


class DomainLocks:
	"""Keyed asyncio locks; one event per domain at a time.

	Locks are created on first use and dropped once nobody holds or waits
	for them. Only serialises within this process.
	"""

	def __init__(self) -> None:
		self._locks: dict[str, asyncio.Lock] = {}
		self._users: dict[str, int] = {}

	@asynccontextmanager
	async def hold(self, domain: str) -> AsyncIterator[None]:
		lock = self._locks.setdefault(domain, asyncio.Lock())
		self._users[domain] = self._users.get(domain, 0) + 1
		try:
			async with lock:
				yield
		finally:
			self._users[domain] -= 1
			if not self._users[domain]:
				del self._users[domain]
				del self._locks[domain]

	def __len__(self) -> int:
		return len(self._locks)


class Reconciler:
	"""Maps each lifecycle event onto certificate, site config and reload steps."""

	def __init__(
		self,
		fetcher: BundleFetcher,
		certs: CertificateStore,
		sites: SiteConfigStore,
		reloader: ProxyReloader,
	):
		self.fetcher = fetcher
		self.certs = certs
		self.sites = sites
		self.reloader = reloader
		self.locks = DomainLocks()

	async def handle(self, event: LifecycleEvent) -> None:
		"""Run the action sequence for *event* to completion or first failure."""
		_log.info("EVENT %s %s", event.event, event.domain)
		async with self.locks.hold(event.domain):
			if isinstance(event, (CertIssued, CertRenewed)):
				await self._install_certificate(event)
			elif isinstance(event, DomainAdded):
				await self._add_domain(event)
			elif isinstance(event, (DomainRemoved, CertRevoked)):
				await self._remove_domain(event)
			else:
				raise TypeError(f"unhandled event type: {type(event).__name__}")

	async def _step(self, event: LifecycleEvent, stage: str, action: Callable[[], Awaitable[T]]) -> T:
		try:
			return await action()
		except Exception as exc:
			_log.error("EVENT %s %s stopped at %s: %s", event.event, event.domain, stage, exc)
			raise ReconcileError(event.event, event.domain, stage, exc) from exc

	async def _install_certificate(self, event: CertIssued | CertRenewed) -> None:
		if event.cert_id:
			_log.info("EVENT %s %s cert_id=%s", event.event, event.domain, event.cert_id)
		bundle = await self._step(event, "fetch", lambda: self.fetcher.fetch(event.domain))
		await self._step(event, "write certs", lambda: asyncio.to_thread(self.certs.write, bundle))
		await self._step(
			event,
			"write config",
			lambda: asyncio.to_thread(self.sites.write, event.domain, ConfigMode.ACTIVE),
		)
		await self._step(event, "reload", self.reloader.reload)

	async def _add_domain(self, event: DomainAdded) -> None:
		# An active domain re-announcing itself must keep its TLS config
		if await asyncio.to_thread(self.sites.exists, event.domain):
			_log.info("EVENT %s %s config already present, nothing to do", event.event, event.domain)
			return
		await self._step(
			event,
			"write config",
			lambda: asyncio.to_thread(self.sites.write, event.domain, ConfigMode.PENDING),
		)
		await self._step(event, "reload", self.reloader.reload)

	async def _remove_domain(self, event: DomainRemoved | CertRevoked) -> None:
		await self._step(event, "remove config", lambda: asyncio.to_thread(self.sites.remove, event.domain))
		await self._step(event, "remove certs", lambda: asyncio.to_thread(self.certs.remove, event.domain))
		await self._step(event, "reload", self.reloader.reload)


def build_reconciler(
	cfg: Config,
	*,
	fetcher: BundleFetcher | None = None,
	reloader: ProxyReloader | None = None,
) -> Reconciler:
	"""Wire a Reconciler from configuration; collaborators may be swapped in."""
	return Reconciler(
		fetcher=fetcher or CertificateFetcher.from_config(cfg),
		certs=CertificateStore.from_config(cfg),
		sites=SiteConfigStore.from_config(cfg),
		reloader=reloader or ShellReloader.from_config(cfg),
	)
