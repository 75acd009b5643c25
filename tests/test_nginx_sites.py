from __future__ import annotations

import stat
from pathlib import Path

from nginx_agent.agent.events import ConfigMode
from nginx_agent.nginx.nginx_sites import SiteConfigStore


def _store(sites_dir: Path, cert_dir: Path, sandbox: bool = False) -> SiteConfigStore:
	return SiteConfigStore(sites_dir, "http://127.0.0.1:3000", cert_dir, sandbox=sandbox)


def test_write_pending(sites_dir: Path, cert_dir: Path) -> None:
	store = _store(sites_dir, cert_dir)
	assert not store.exists("example.com")

	path = store.write("example.com", ConfigMode.PENDING)

	assert path == sites_dir / "example.com.conf"
	assert store.exists("example.com")
	assert "PENDING" in path.read_text()
	assert stat.S_IMODE(path.stat().st_mode) == 0o644
	assert [p.name for p in sites_dir.iterdir()] == ["example.com.conf"]


def test_switch_to_active_replaces_whole_file(sites_dir: Path, cert_dir: Path) -> None:
	store = _store(sites_dir, cert_dir)
	store.write("example.com", ConfigMode.PENDING)
	path = store.write("example.com", ConfigMode.ACTIVE)

	content = path.read_text()
	assert "PENDING" not in content
	assert content.count("# nginx-cert-agent:") == 1
	assert str(cert_dir / "example.com" / "fullchain.pem") in content


def test_remove_tolerates_absence(sites_dir: Path, cert_dir: Path) -> None:
	store = _store(sites_dir, cert_dir)
	store.remove("example.com")
	store.write("example.com", ConfigMode.PENDING)
	store.remove("example.com")
	assert not store.exists("example.com")


def test_sandbox_writes_nothing(sites_dir: Path, cert_dir: Path) -> None:
	store = _store(sites_dir, cert_dir, sandbox=True)
	store.write("example.com", ConfigMode.ACTIVE)
	assert list(sites_dir.iterdir()) == []

	(sites_dir / "example.com.conf").write_text("keep me")
	store.remove("example.com")
	assert (sites_dir / "example.com.conf").read_text() == "keep me"
