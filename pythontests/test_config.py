from __future__ import annotations

import logging

from playlistify.config import (
    SpotifyConfig,
    build_transport,
    get_default_config_dir,
    load_config,
    setup_logging,
)
from playlistify.tokens import Credentials
from playlistify.transport import SPOTIFY_API_BASE_URL, SPOTIFY_TOKEN_URL


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("PLAYLISTIFY_SPOTIFY_CLIENT_ID", "env-id")
    monkeypatch.setenv("PLAYLISTIFY_SPOTIFY_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("PLAYLISTIFY_SPOTIFY_REFRESH_TOKEN", "env-refresh")
    monkeypatch.setenv("PLAYLISTIFY_SPOTIFY_MARKET", "DE")
    monkeypatch.setenv("PLAYLISTIFY_BACKEND_URL", "http://localhost:3001")
    monkeypatch.setenv("PLAYLISTIFY_USE_BACKEND", "yes")

    cfg = load_config().spotify

    assert cfg.credentials == Credentials("env-id", "env-secret", "env-refresh")
    assert cfg.market == "DE"
    assert cfg.backend_url == "http://localhost:3001"
    assert cfg.use_backend is True


def test_build_transport_direct_by_default() -> None:
    transport = build_transport(SpotifyConfig(client_id="a", client_secret="b", refresh_token="c"))

    assert transport.api_base_url == SPOTIFY_API_BASE_URL
    assert transport.token_url == SPOTIFY_TOKEN_URL
    assert transport.health_url is None
    transport.close()


def test_build_transport_through_backend() -> None:
    cfg = SpotifyConfig(
        client_id="a",
        client_secret="b",
        refresh_token="c",
        backend_url="http://localhost:3001/",
        use_backend=True,
    )

    transport = build_transport(cfg)

    assert transport.api_base_url == "http://localhost:3001/proxy/v1"
    assert transport.token_url == "http://localhost:3001/proxy/token"
    assert transport.health_url == "http://localhost:3001/health"
    transport.close()


def test_backend_url_alone_only_enables_health_check() -> None:
    cfg = SpotifyConfig(client_id="a", client_secret="b", refresh_token="c", backend_url="http://b.test")

    transport = build_transport(cfg)

    assert transport.api_base_url == SPOTIFY_API_BASE_URL
    assert transport.health_url == "http://b.test/health"
    transport.close()


def test_setup_logging_writes_to_config_dir(isolated_config_dir, monkeypatch) -> None:
    monkeypatch.setenv("PLAYLISTIFY_LOG_LEVEL", "DEBUG")
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging()
        assert get_default_config_dir() == isolated_config_dir
        assert (isolated_config_dir / "logs").is_dir()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
