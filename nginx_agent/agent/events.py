#!/usr/bin/env python3
#
# nginx_agent/agent/events.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Lifecycle event and certificate bundle models."""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import MalformedInputError

# ---------------------------------------------------------------------------
# Pydantic Models
# ---------------------------------------------------------------------------

_Domain = Annotated[str, Field(min_length=1, max_length=253)]


class _EventBase(BaseModel):
	model_config = ConfigDict(populate_by_name=True, frozen=True)

	domain: _Domain


class CertIssued(_EventBase):
	"""Control plane issued the first certificate for a domain."""
	event: Literal["cert.issued"]
	cert_id: Optional[str] = Field(default=None, alias="certId")


class CertRenewed(_EventBase):
	"""Control plane renewed an existing certificate."""
	event: Literal["cert.renewed"]
	cert_id: Optional[str] = Field(default=None, alias="certId")


class CertRevoked(_EventBase):
	event: Literal["cert.revoked"]


class DomainAdded(_EventBase):
	event: Literal["domain.added"]


class DomainRemoved(_EventBase):
	event: Literal["domain.removed"]


LifecycleEvent = Annotated[
	Union[CertIssued, CertRenewed, CertRevoked, DomainAdded, DomainRemoved],
	Field(discriminator="event"),
]

_event_adapter: TypeAdapter[LifecycleEvent] = TypeAdapter(LifecycleEvent)


class CertificateBundle(BaseModel):
	"""PEM material for one domain as served by the control plane.

	Fields default to empty so that incomplete bundles reach the certificate
	store's validation (which rejects them) instead of failing as a parse error.
	"""
	model_config = ConfigDict(populate_by_name=True, frozen=True)

	domain: str = ""
	private_key: str = Field(default="", alias="privateKey")
	certificate: str = ""
	full_chain: str = Field(default="", alias="fullChain")
	expires_at: str = Field(default="", alias="expiresAt")


class ConfigMode(str, Enum):
	"""Which nginx site template a domain is rendered with."""
	PENDING = "pending"
	ACTIVE = "active"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_json(raw: bytes) -> object:
	"""Decode a request body as JSON; raises MalformedInputError("invalid json")."""
	try:
		return json.loads(raw)
	except (ValueError, RecursionError) as exc:
		raise MalformedInputError("invalid json") from exc


def parse_event(payload: object) -> LifecycleEvent:
	"""Validate decoded JSON as a lifecycle event; raises MalformedInputError("invalid event")."""
	try:
		return _event_adapter.validate_python(payload)
	except ValidationError as exc:
		raise MalformedInputError("invalid event") from exc


__all__ = [
	"CertIssued",
	"CertRenewed",
	"CertRevoked",
	"DomainAdded",
	"DomainRemoved",
	"LifecycleEvent",
	"CertificateBundle",
	"ConfigMode",
	"parse_json",
	"parse_event",
]
