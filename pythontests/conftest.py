"""
Shared fixtures: a fake httpx.Client that plays the Spotify accounts service
and Web API, so no test touches the network.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from playlistify.tokens import Credentials
from playlistify.transport import HttpTransport

Handler = Union[httpx.Response, Callable[[Dict[str, Any]], httpx.Response]]


def make_track_items(count: int, prefix: str = "track") -> List[dict]:
    return [
        {
            "id": f"{prefix}-{i}",
            "name": f"Song {i}",
            "artists": [{"name": f"Artist {i}"}, {"name": "Guest"}],
            "album": {
                "name": f"Album {i}",
                "images": [{"url": f"https://img.example/{i}.jpg"}],
            },
            "duration_ms": 180000 + i,
            "uri": f"spotify:track:{prefix}-{i}",
            "preview_url": None,
            "external_urls": {"spotify": f"https://open.spotify.com/track/{prefix}-{i}"},
        }
        for i in range(1, count + 1)
    ]


class FakeSpotifyHTTP:
    """
    Minimal stand-in for httpx.Client.

    Token requests (any URL containing "api/token") get a fresh token each
    time unless ``token_response`` is set. Web API paths are matched on the
    part after "/v1" against handlers registered with ``on``.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.handlers: Dict[Tuple[str, str], Handler] = {}
        self.token_count = 0
        self.expires_in: Optional[int] = 3600
        self.token_response: Optional[httpx.Response] = None
        self.on_token: Optional[Callable[[], None]] = None

    def on(self, method: str, path: str, handler: Handler) -> None:
        self.handlers[(method, path)] = handler

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.calls.append((method, url, kwargs))
        if "api/token" in url:
            return self._token()
        path = url.split("/v1", 1)[1] if "/v1" in url else url
        handler = self.handlers.get((method, path))
        if handler is None:
            return httpx.Response(404, json={"error": {"status": 404, "message": "not found"}})
        return handler(kwargs) if callable(handler) else handler

    def _token(self) -> httpx.Response:
        if self.on_token is not None:
            self.on_token()
        self.token_count += 1
        if self.token_response is not None:
            return self.token_response
        payload: Dict[str, Any] = {"access_token": f"token-{self.token_count}", "token_type": "Bearer"}
        if self.expires_in is not None:
            payload["expires_in"] = self.expires_in
        return httpx.Response(200, json=payload)

    def api_calls(self, path: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [c for c in self.calls if c[1].endswith(path)]

    def close(self) -> None:
        return None


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PLAYLISTIFY_CONFIG_DIR", str(tmp_path / "config"))
    return tmp_path / "config"


@pytest.fixture
def fake_spotify() -> FakeSpotifyHTTP:
    return FakeSpotifyHTTP()


@pytest.fixture
def transport(fake_spotify: FakeSpotifyHTTP) -> HttpTransport:
    return HttpTransport(client=fake_spotify, health_url="http://backend.test/health")


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(client_id="client-id", client_secret="client-secret", refresh_token="refresh-me")


@pytest.fixture
def make_items() -> Callable[..., List[dict]]:
    return make_track_items
