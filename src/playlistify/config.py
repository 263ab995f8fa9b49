"""
Configuration loading for Playlistify.

Spotify credentials and endpoint overrides come from environment variables,
optionally via a .env file. Logs and saved playlists live in the platform
config directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir
from dotenv import load_dotenv
import os
import logging
from logging.handlers import RotatingFileHandler

from .tokens import Credentials
from .transport import SPOTIFY_API_BASE_URL, SPOTIFY_TOKEN_URL, HttpTransport


APP_NAME = "playlistify"
APP_AUTHOR = "Playlistify"


@dataclass
class SpotifyConfig:
    client_id: str
    client_secret: str
    refresh_token: str
    api_base_url: str = SPOTIFY_API_BASE_URL
    token_url: str = SPOTIFY_TOKEN_URL
    market: Optional[str] = None  # e.g. "US"; omitted from searches when unset.
    backend_url: Optional[str] = None  # Playlistify backend used as an intermediary.
    use_backend: bool = False  # If True and backend_url is set, proxy every call through it.

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            refresh_token=self.refresh_token,
        )


@dataclass
class AppConfig:
    spotify: SpotifyConfig


def get_default_config_dir() -> Path:
    """
    Returns the platform-appropriate directory for persistent Playlistify config.
    """
    override = os.getenv("PLAYLISTIFY_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def load_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    """
    load_dotenv()

    spotify_cfg = SpotifyConfig(
        client_id=os.getenv("PLAYLISTIFY_SPOTIFY_CLIENT_ID", ""),
        client_secret=os.getenv("PLAYLISTIFY_SPOTIFY_CLIENT_SECRET", ""),
        refresh_token=os.getenv("PLAYLISTIFY_SPOTIFY_REFRESH_TOKEN", ""),
        api_base_url=os.getenv("PLAYLISTIFY_SPOTIFY_API_BASE_URL", SPOTIFY_API_BASE_URL),
        token_url=os.getenv("PLAYLISTIFY_SPOTIFY_TOKEN_URL", SPOTIFY_TOKEN_URL),
        market=os.getenv("PLAYLISTIFY_SPOTIFY_MARKET") or None,
        backend_url=os.getenv("PLAYLISTIFY_BACKEND_URL") or None,
        use_backend=os.getenv("PLAYLISTIFY_USE_BACKEND", "false").lower() in {"1", "true", "yes"},
    )
    return AppConfig(spotify=spotify_cfg)


def build_transport(cfg: SpotifyConfig, *, timeout: float = 10.0) -> HttpTransport:
    """
    Pick the transport once: straight to Spotify, or through the backend.
    """
    if cfg.use_backend and cfg.backend_url:
        logging.getLogger(__name__).debug(f"Routing Spotify calls through backend {cfg.backend_url}")
        return HttpTransport.via_backend(cfg.backend_url, timeout=timeout)
    health_url = f"{cfg.backend_url.rstrip('/')}/health" if cfg.backend_url else None
    return HttpTransport(
        cfg.api_base_url,
        cfg.token_url,
        health_url=health_url,
        timeout=timeout,
    )


def setup_logging() -> None:
    """
    Configure centralized logging for Playlistify using Python's built-in logging module.

    - Logs to <config dir>/logs/playlistify.log
    - Uses RotatingFileHandler with 10MB max size and 5 backup files
    - Logs to both file and console
    - Default level: INFO (can be overridden via PLAYLISTIFY_LOG_LEVEL env var)
    """
    log_level_str = os.getenv("PLAYLISTIFY_LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_dir = get_default_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    file_handler = RotatingFileHandler(
        str(log_dir / "playlistify.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(console_handler)


__all__ = [
    "AppConfig",
    "SpotifyConfig",
    "build_transport",
    "get_default_config_dir",
    "load_config",
    "setup_logging",
]
