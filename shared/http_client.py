"""
HTTP client configuration for the WoWClassicUI API.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import requests

DEFAULT_BASE_URL = "https://api.wowclassicui.com/"
DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass
class HttpClientConfig:
    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HttpClientConfig":
        env = os.environ if environ is None else environ
        try:
            timeout = float(env.get("WOWCLASSICUI_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))
        except ValueError:
            timeout = DEFAULT_TIMEOUT_SECONDS
        return cls(
            base_url=env.get("WOWCLASSICUI_API_BASE_URL", DEFAULT_BASE_URL),
            token=env.get("WOWCLASSICUI_API_TOKEN") or None,
            timeout=timeout,
        )


class ApiClient:
    """requests.Session bound to the configured API base URL."""

    def __init__(self, config: HttpClientConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._session = session or requests.Session()
        if config.token:
            self.set_auth_token(config.token)

    def set_auth_token(self, token: str) -> None:
        self.config.token = token
        self._session.headers["Authorization"] = f"Bearer {token}"

    def url_for(self, path: str) -> str:
        if path.lower().startswith(("https://", "http://")):
            return path
        return self.config.base_url.rstrip("/") + "/" + path.lstrip("/")

    def is_api_url(self, url: str) -> bool:
        base = self.config.base_url.rstrip("/") + "/"
        return url.lower().startswith(base.lower())

    def post_json(self, path: str, payload: Any) -> Any:
        resp = self._session.post(self.url_for(path), json=payload, timeout=self.config.timeout)
        resp.raise_for_status()
        return resp.json()

    def download(self, path: str, dest: Path) -> Path:
        """Stream ``path`` to ``dest``; the API token is only sent to the API host."""
        url = self.url_for(path)
        # A None value removes the session-level header for this request.
        headers = None if self.is_api_url(url) else {"Authorization": None}
        dest.parent.mkdir(parents=True, exist_ok=True)
        with self._session.get(url, stream=True, timeout=self.config.timeout, headers=headers) as r:
            r.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in r.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        return dest
