#!/usr/bin/env python3
#
# nginx_agent/agent/errors.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Error taxonomy shared by every reconciliation component."""

from __future__ import annotations


class AgentError(Exception):
	"""Base class for all agent failures."""


class AuthenticationError(AgentError):
	"""Webhook signature missing or invalid."""


class MalformedInputError(AgentError):
	"""Webhook body is not JSON or not a known lifecycle event."""


class RemoteError(AgentError):
	"""Control plane answered with an error or could not be reached."""

	def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
		super().__init__(message)
		self.status = status
		self.body = body


class MalformedResponseError(AgentError):
	"""Control plane answered 200 with a body that is not a certificate bundle."""


class FetchTimeoutError(AgentError):
	"""Control plane did not answer within the fetch timeout."""


class InvalidBundleError(AgentError):
	"""Certificate material is empty or lacks PEM markers."""


class StorageError(AgentError):
	"""Filesystem operation on certificates or site configs failed."""


class ReloadError(AgentError):
	"""Proxy reload command failed; disk and live proxy state have diverged."""


class ReconcileError(AgentError):
	"""A step of an event's action sequence failed.

	Carries the event kind, domain and stage so the caller sees where the
	sequence stopped. The original error is chained as ``__cause__``.
	"""

	def __init__(self, event: str, domain: str, stage: str, cause: BaseException) -> None:
		super().__init__(f"{event} {domain}: {stage} failed: {cause}")
		self.event = event
		self.domain = domain
		self.stage = stage


__all__ = [
	"AgentError",
	"AuthenticationError",
	"MalformedInputError",
	"RemoteError",
	"MalformedResponseError",
	"FetchTimeoutError",
	"InvalidBundleError",
	"StorageError",
	"ReloadError",
	"ReconcileError",
]
