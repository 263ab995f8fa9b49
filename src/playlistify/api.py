"""
FastAPI backend for Playlistify.

Exposes a small JSON API used by browser frontends:

- GET  /health
- POST /api/search
  Request body:
    {
      "genres": ["workout"],
      "moods": ["energetic"],
      "activities": [],
      "limit": 20,
      "credentials": {"client_id": "...", "client_secret": "...", "refresh_token": "..."}
    }
  Response body:
    {"tags": ["workout", "energetic"], "count": 20, "tracks": [{...}, ...]}
- POST /api/create-playlist
  Request body:
    {"name": "...", "description": "...", "track_uris": ["spotify:track:..."], "credentials": {...}}
  Response body:
    {"playlist_url": "https://open.spotify.com/playlist/..."}

It also forwards raw Spotify calls under /proxy so a client can run its own
``PlaylistOrchestrator`` through this server (``HttpTransport.via_backend``).
When a request carries no credentials, the server's configured ones are used.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, List, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import load_config
from .errors import InvalidCredentials, NoResults, SpotifyError, TrackInsertionFailed
from .pipeline import PlaylistRequest, build_tags
from .spotify import PlaylistOrchestrator
from .tokens import Credentials, TokenManager
from .transport import HttpTransport

logger = logging.getLogger(__name__)

# Rate limiter to keep a single client from exhausting the Spotify quota
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Playlistify API",
    description="Playlistify: describe a vibe, get a Spotify playlist.",
    version="0.1.0",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Local Vite dev server and preview build.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


_cfg = load_config()
_transport = HttpTransport(_cfg.spotify.api_base_url, _cfg.spotify.token_url)
_proxy_http = httpx.AsyncClient(timeout=10.0)

# One TokenManager per credential set, least recently used evicted past the cap.
MAX_TOKEN_MANAGERS = 128
_token_managers: "OrderedDict[Credentials, TokenManager]" = OrderedDict()
_token_managers_lock = threading.Lock()


class CredentialsIn(BaseModel):
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""


class SearchRequest(BaseModel):
    description: str = ""
    genres: List[str] = []
    moods: List[str] = []
    activities: List[str] = []
    limit: int = 20
    credentials: Optional[CredentialsIn] = None


class TrackOut(BaseModel):
    id: str
    name: str
    artist: str
    album: str
    album_art: Optional[str] = None
    duration_ms: int
    uri: str
    preview_url: Optional[str] = None
    spotify_url: str


class SearchResponse(BaseModel):
    tags: List[str]
    count: int
    tracks: List[TrackOut]


class CreatePlaylistRequest(BaseModel):
    name: str
    description: Optional[str] = None
    track_uris: List[str] = []
    credentials: Optional[CredentialsIn] = None


class CreatePlaylistResponse(BaseModel):
    playlist_url: Optional[str]


def _resolve_credentials(body: Optional[CredentialsIn]) -> Credentials:
    if body is None:
        return _cfg.spotify.credentials
    return Credentials(
        client_id=body.client_id,
        client_secret=body.client_secret,
        refresh_token=body.refresh_token,
    )


def _get_orchestrator(credentials: Credentials) -> PlaylistOrchestrator:
    with _token_managers_lock:
        manager = _token_managers.get(credentials)
        if manager is None:
            manager = TokenManager(_transport)
            _token_managers[credentials] = manager
        _token_managers.move_to_end(credentials)
        while len(_token_managers) > MAX_TOKEN_MANAGERS:
            _token_managers.popitem(last=False)
    return PlaylistOrchestrator(_transport, token_manager=manager, market=_cfg.spotify.market)


def _to_http_exception(exc: SpotifyError) -> HTTPException:
    if isinstance(exc, InvalidCredentials):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NoResults):
        return HTTPException(status_code=404, detail=str(exc))
    status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
    detail: Dict[str, object] = {
        "error": type(exc).__name__,
        "message": str(exc),
        "upstream_status": exc.status_code,
        "upstream_body": exc.body,
    }
    if isinstance(exc, TrackInsertionFailed):
        detail["playlist_url"] = exc.playlist_url
        detail["batch_index"] = exc.batch_index
        detail["total_batches"] = exc.total_batches
    return HTTPException(status_code=status_code, detail=detail)


@app.get("/health", tags=["system"])
def health() -> dict:
    logger.debug("Health check endpoint called")
    return {"status": "healthy"}


@app.post("/api/search", response_model=SearchResponse, tags=["spotify"])
@limiter.limit("30/minute")
def api_search(body: SearchRequest, request: Request) -> SearchResponse:
    credentials = _resolve_credentials(body.credentials)
    playlist_request = PlaylistRequest(
        description=body.description,
        genres=body.genres,
        moods=body.moods,
        activities=body.activities,
        track_count=body.limit,
    )
    tags = build_tags(playlist_request)
    logger.info(f"API search request: tags={tags}, limit={body.limit}")

    try:
        tracks = _get_orchestrator(credentials).search(credentials, tags, body.limit)
    except SpotifyError as exc:
        logger.error(f"Spotify error in API search endpoint: {exc}")
        raise _to_http_exception(exc) from exc

    return SearchResponse(
        tags=tags,
        count=len(tracks),
        tracks=[TrackOut(**t.to_dict()) for t in tracks],
    )


@app.post("/api/create-playlist", response_model=CreatePlaylistResponse, tags=["spotify"])
@limiter.limit("10/minute")
def api_create_playlist(body: CreatePlaylistRequest, request: Request) -> CreatePlaylistResponse:
    """
    Create a private playlist on the user's Spotify account.

    If adding tracks fails part-way, the response is an error whose detail still
    carries the playlist URL and the failed batch index: the playlist exists.
    """
    logger.info(f"Creating playlist: name={body.name!r}, tracks={len(body.track_uris)}")
    credentials = _resolve_credentials(body.credentials)
    try:
        url = _get_orchestrator(credentials).create_playlist(
            credentials,
            body.name,
            body.description,
            body.track_uris,
        )
    except SpotifyError as exc:
        logger.error(f"Spotify error in API create-playlist endpoint: {exc}")
        raise _to_http_exception(exc) from exc
    return CreatePlaylistResponse(playlist_url=url)


# ------------------------------------------------------------------------- #
# Pass-through proxy
# ------------------------------------------------------------------------- #
_FORWARDED_HEADERS = ("authorization", "content-type")


async def _forward(method: str, url: str, request: Request) -> Response:
    content = await request.body()
    headers = {k: v for k, v in request.headers.items() if k.lower() in _FORWARDED_HEADERS}
    try:
        upstream = await _proxy_http.request(
            method,
            url,
            params=dict(request.query_params),
            headers=headers,
            content=content or None,
        )
    except httpx.HTTPError as exc:
        logger.error(f"Proxy request to {url} failed: {exc}")
        raise HTTPException(status_code=502, detail=f"Error contacting Spotify: {exc}") from exc

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


@app.post("/proxy/token", tags=["proxy"])
async def proxy_token(request: Request) -> Response:
    logger.debug("Forwarding token request to Spotify accounts service")
    return await _forward("POST", _cfg.spotify.token_url, request)


@app.api_route("/proxy/v1/{path:path}", methods=["GET", "POST"], tags=["proxy"])
async def proxy_api(path: str, request: Request) -> Response:
    url = f"{_cfg.spotify.api_base_url.rstrip('/')}/{path}"
    logger.debug(f"Forwarding {request.method} /{path} to Spotify Web API")
    return await _forward(request.method, url, request)


@app.on_event("shutdown")
async def close_http_clients() -> None:
    logger.info("Closing Playlistify HTTP clients")
    await _proxy_http.aclose()
    _transport.close()
