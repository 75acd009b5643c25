#!/usr/bin/env python3
#
# nginx_agent/nginx/nginx_template.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Nginx site configuration generation.

Pure functions only: no filesystem access. Two templates exist. The pending
one is written when a domain is announced before any certificate exists and
proxies plain HTTP so the ACME challenge can be answered upstream. The
active one replaces it wholesale once a certificate is on disk.

The TLS policy is fixed on purpose and not exposed as configuration.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from ..agent.events import ConfigMode
from ..certs.cert_store import FULLCHAIN_FILE, PRIVKEY_FILE
from ..utils.time import utcnow
from .nginx_constants import (
	ACME_CHALLENGE_PATH,
	HSTS_HEADER,
	SSL_CIPHERS,
	SSL_PROTOCOLS,
	SSL_SESSION_CACHE,
)

MARKER = "# nginx-cert-agent"


def cert_paths(domain: str, cert_dir: Path | str) -> dict[str, str]:
	"""Return the fullchain/privkey paths nginx should load for *domain*."""
	base = Path(cert_dir) / domain
	return {
		"fullchain": str(base / FULLCHAIN_FILE),
		"privkey": str(base / PRIVKEY_FILE),
	}


def _header(mode: ConfigMode, generated_at: datetime) -> str:
	return (
		f"{MARKER}: {mode.value.upper()}\n"
		"# Do not edit - this file is managed by the certificate agent.\n"
		f"# Generated: {generated_at.isoformat()}\n"
	)


def _challenge_location(upstream: str) -> str:
	return f"""    location {ACME_CHALLENGE_PATH} {{
        proxy_pass        {upstream};
        proxy_set_header  Host              $host;
        proxy_set_header  X-Real-IP         $remote_addr;
        proxy_set_header  X-Forwarded-For   $proxy_add_x_forwarded_for;
        proxy_set_header  X-Forwarded-Proto $scheme;
    }}
"""


def _proxy_directives(upstream: str, *, hide_powered_by: bool) -> str:
	lines = [
		f"        proxy_pass              {upstream};",
		"        proxy_http_version      1.1;",
		"        proxy_set_header        Upgrade           $http_upgrade;",
		'        proxy_set_header        Connection        "upgrade";',
		"        proxy_set_header        Host              $host;",
		"        proxy_set_header        X-Real-IP         $remote_addr;",
		"        proxy_set_header        X-Forwarded-For   $proxy_add_x_forwarded_for;",
		"        proxy_set_header        X-Forwarded-Proto $scheme;",
	]
	if hide_powered_by:
		lines.append("        proxy_hide_header       X-Powered-By;")
	lines += [
		"        proxy_read_timeout      60s;",
		"        proxy_send_timeout      60s;",
		"        proxy_connect_timeout   10s;",
	]
	if hide_powered_by:
		lines += [
			"        proxy_buffering         on;",
			"        proxy_buffer_size       4k;",
			"        proxy_buffers           8 4k;",
		]
	return "\n".join(lines) + "\n"


def render_pending(domain: str, upstream: str, *, generated_at: datetime | None = None) -> str:
	"""Port 80 only; challenge path and everything else proxied unencrypted."""
	generated_at = generated_at or utcnow()
	return f"""{_header(ConfigMode.PENDING, generated_at)}
server {{
    listen 80;
    listen [::]:80;
    server_name {domain};

{_challenge_location(upstream)}
    location / {{
{_proxy_directives(upstream, hide_powered_by=False)}    }}
}}
"""


def render_active(
	domain: str,
	upstream: str,
	cert_dir: Path | str,
	*,
	generated_at: datetime | None = None,
) -> str:
	"""Port 80 redirects to HTTPS except the challenge; port 443 is the full proxy."""
	generated_at = generated_at or utcnow()
	paths = cert_paths(domain, cert_dir)
	fullchain, privkey = paths["fullchain"], paths["privkey"]
	return f"""{_header(ConfigMode.ACTIVE, generated_at)}
server {{
    listen 80;
    listen [::]:80;
    server_name {domain};
    server_tokens off;

    # ACME HTTP-01 must never be redirected
{_challenge_location(upstream)}
    location / {{
        return 308 https://$host$request_uri;
    }}
}}

server {{
    listen 443 ssl;
    listen [::]:443 ssl;
    http2 on;
    server_name {domain};
    server_tokens off;

    ssl_certificate      {fullchain};
    ssl_certificate_key  {privkey};

    ssl_protocols              {SSL_PROTOCOLS};
    ssl_ciphers                {SSL_CIPHERS};
    ssl_prefer_server_ciphers  off;

    ssl_session_cache    {SSL_SESSION_CACHE};
    ssl_session_timeout  1d;
    ssl_session_tickets  off;

    ssl_stapling         on;
    ssl_stapling_verify  on;
    resolver             1.1.1.1 8.8.8.8 valid=300s;
    resolver_timeout     5s;

    add_header  Strict-Transport-Security  "{HSTS_HEADER}"            always;
    add_header  X-Content-Type-Options     "nosniff"                     always;
    add_header  X-Frame-Options            "SAMEORIGIN"                  always;
    add_header  Referrer-Policy            "no-referrer-when-downgrade"  always;
    add_header  X-Powered-By               ""                            always;

    location / {{
{_proxy_directives(upstream, hide_powered_by=True)}    }}
}}
"""


def render(
	mode: ConfigMode,
	domain: str,
	upstream: str,
	cert_dir: Path | str,
	*,
	generated_at: datetime | None = None,
) -> str:
	"""Render the site file for *domain* in the given mode."""
	mode = ConfigMode(mode)
	if mode is ConfigMode.ACTIVE:
		return render_active(domain, upstream, cert_dir, generated_at=generated_at)
	return render_pending(domain, upstream, generated_at=generated_at)


__all__ = [
	"MARKER",
	"cert_paths",
	"render",
	"render_active",
	"render_pending",
]
