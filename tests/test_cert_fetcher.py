from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import CONTROL_PLANE, INTERNAL_SECRET, LEAF_CERT, bundle_payload
from nginx_agent.agent.errors import FetchTimeoutError, MalformedResponseError, RemoteError
from nginx_agent.certs.cert_fetcher import INTERNAL_SECRET_HEADER, CertificateFetcher


def _fetcher() -> CertificateFetcher:
	return CertificateFetcher(CONTROL_PLANE + "/", INTERNAL_SECRET, timeout=10.0)


def _patch_get(monkeypatch, respond):
	calls: list[tuple[str, dict]] = []

	async def fake_get(self, url, *, headers):  # type: ignore[no-untyped-def]
		del self
		calls.append((url, headers))
		result = respond(url)
		if isinstance(result, Exception):
			raise result
		return result

	monkeypatch.setattr("httpx.AsyncClient.get", fake_get)
	return calls


def _response(url: str, status: int = 200, **kwargs) -> httpx.Response:
	return httpx.Response(status_code=status, request=httpx.Request("GET", url), **kwargs)


def test_fetch_returns_bundle_and_authenticates(monkeypatch) -> None:
	calls = _patch_get(monkeypatch, lambda url: _response(url, json=bundle_payload()))

	bundle = asyncio.run(_fetcher().fetch("example.com"))

	assert bundle.domain == "example.com"
	assert bundle.certificate == LEAF_CERT
	assert calls == [
		(f"{CONTROL_PLANE}/api/internal/cert/example.com", {INTERNAL_SECRET_HEADER: INTERNAL_SECRET}),
	]


def test_domain_is_url_encoded() -> None:
	assert _fetcher().cert_url("a b/c.example") == f"{CONTROL_PLANE}/api/internal/cert/a%20b%2Fc.example"


def test_missing_domain_is_filled_in(monkeypatch) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, json=bundle_payload(domain=None)))
	assert asyncio.run(_fetcher().fetch("example.com")).domain == "example.com"


@pytest.mark.parametrize("returned", ["other.example", "example.com.evil"])
def test_bundle_for_another_domain_is_rejected(monkeypatch, returned: str) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, json=bundle_payload(domain=returned)))

	with pytest.raises(MalformedResponseError, match="requested 'example.com'"):
		asyncio.run(_fetcher().fetch("example.com"))


def test_domain_comparison_ignores_case(monkeypatch) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, json=bundle_payload(domain="Example.COM")))
	assert asyncio.run(_fetcher().fetch("example.com")).domain == "Example.COM"


def test_non_200_raises_remote_error(monkeypatch) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, 404, text="no certificate for domain"))

	with pytest.raises(RemoteError, match="returned 404") as exc_info:
		asyncio.run(_fetcher().fetch("example.com"))
	assert exc_info.value.status == 404
	assert exc_info.value.body == "no certificate for domain"


def test_long_error_bodies_are_truncated(monkeypatch) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, 502, text="x" * 2000))
	with pytest.raises(RemoteError) as exc_info:
		asyncio.run(_fetcher().fetch("example.com"))
	assert len(str(exc_info.value)) < 600


@pytest.mark.parametrize(
	"kwargs",
	[
		{"text": "<html>gateway</html>"},
		{"json": ["not", "an", "object"]},
		{"json": {"domain": "example.com", "privateKey": 42}},
	],
)
def test_unparseable_body_raises_malformed_response(monkeypatch, kwargs: dict) -> None:
	_patch_get(monkeypatch, lambda url: _response(url, **kwargs))
	with pytest.raises(MalformedResponseError):
		asyncio.run(_fetcher().fetch("example.com"))


def test_timeout_raises_fetch_timeout(monkeypatch) -> None:
	calls = _patch_get(monkeypatch, lambda url: httpx.ReadTimeout("timed out"))

	with pytest.raises(FetchTimeoutError, match="timed out after 10s"):
		asyncio.run(_fetcher().fetch("example.com"))
	# No retry inside the fetcher
	assert len(calls) == 1


def test_connection_error_raises_remote_error(monkeypatch) -> None:
	_patch_get(monkeypatch, lambda url: httpx.ConnectError("connection refused"))
	with pytest.raises(RemoteError, match="unreachable") as exc_info:
		asyncio.run(_fetcher().fetch("example.com"))
	assert exc_info.value.status is None
