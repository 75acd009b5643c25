from __future__ import annotations

from datetime import datetime, timezone

from nginx_agent.agent.events import ConfigMode
from nginx_agent.nginx.nginx_template import cert_paths, render, render_active, render_pending

UPSTREAM = "http://127.0.0.1:3000"
STAMP = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _without_stamp(text: str) -> list[str]:
	return [line for line in text.splitlines() if not line.startswith("# Generated:")]


def test_pending_serves_plain_http_only() -> None:
	conf = render_pending("example.com", UPSTREAM, generated_at=STAMP)
	assert "PENDING" in conf.splitlines()[0]
	assert "listen 80;" in conf
	assert "listen [::]:80;" in conf
	assert "443" not in conf
	assert "ssl_certificate" not in conf
	assert "server_name example.com;" in conf
	assert "location /.well-known/acme-challenge/ {" in conf
	assert "return 308" not in conf
	assert conf.count(f"proxy_pass        {UPSTREAM};") == 1
	assert conf.count(f"proxy_pass              {UPSTREAM};") == 1


def test_active_redirects_and_terminates_tls() -> None:
	conf = render_active("example.com", UPSTREAM, "/etc/ssl/agent", generated_at=STAMP)
	assert "ACTIVE" in conf.splitlines()[0]
	assert "listen 443 ssl;" in conf
	assert "return 308 https://$host$request_uri;" in conf
	assert "ssl_certificate      /etc/ssl/agent/example.com/fullchain.pem;" in conf
	assert "ssl_certificate_key  /etc/ssl/agent/example.com/privkey.pem;" in conf
	# Challenge path stays reachable over plain HTTP
	http_block = conf.split("listen 443")[0]
	assert "location /.well-known/acme-challenge/ {" in http_block


def test_active_security_policy_is_fixed() -> None:
	conf = render_active("example.com", UPSTREAM, "/certs", generated_at=STAMP)
	assert "ssl_protocols              TLSv1.2 TLSv1.3;" in conf
	assert "ECDHE-RSA-CHACHA20-POLY1305" in conf
	assert 'Strict-Transport-Security  "max-age=63072000"' in conf
	assert "includeSubDomains" not in conf
	assert "preload" not in conf
	assert conf.count("server_tokens off;") == 2
	assert "proxy_hide_header       X-Powered-By;" in conf
	assert "ssl_session_cache    shared:CHRAGENT:10m;" in conf


def test_render_dispatches_on_mode() -> None:
	assert render(ConfigMode.PENDING, "a.test", UPSTREAM, "/c", generated_at=STAMP) == render_pending(
		"a.test", UPSTREAM, generated_at=STAMP
	)
	assert render("active", "a.test", UPSTREAM, "/c", generated_at=STAMP) == render_active(
		"a.test", UPSTREAM, "/c", generated_at=STAMP
	)


def test_output_only_varies_in_timestamp() -> None:
	first = render(ConfigMode.ACTIVE, "example.com", UPSTREAM, "/certs")
	second = render(ConfigMode.ACTIVE, "example.com", UPSTREAM, "/certs", generated_at=STAMP)
	assert f"# Generated: {STAMP.isoformat()}" in second
	assert _without_stamp(first) == _without_stamp(second)


def test_cert_paths() -> None:
	assert cert_paths("example.com", "/etc/ssl/x") == {
		"fullchain": "/etc/ssl/x/example.com/fullchain.pem",
		"privkey": "/etc/ssl/x/example.com/privkey.pem",
	}
