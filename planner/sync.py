"""HTTP client for the optimizer service and the live-edit sync endpoint.

Endpoints (relative to ``api_base``):

  * ``POST /craft/project``     ``{name, userId}`` -> project
  * ``POST /craft/layout``      CRAFT request body -> layout id
  * ``GET  /craft/result``      ``?layoutId=`` -> placements + score
  * ``POST /corelap/generate``  build request body -> candidates
  * ``POST /aldep/generate``    build request body -> candidates

Responses go through ``normalize.py``; transport failures and non-2xx
statuses become ``SyncError``. Nothing is retried and no timeout is set.

``sync_live_layout`` is the fire-and-forget roster push made after every
edit; its failures are logged and swallowed. It runs on short-lived threads,
so it posts with a plain ``requests.post`` rather than the shared session.
"""

from __future__ import annotations

import logging

import requests

from . import config
from .errors import PayloadError, SyncError
from .normalize import (
    extract_layout_id,
    extract_project,
    normalize_candidates,
    normalize_result,
)
from .types import Department, Mode, OptimizationResult, Project

logger = logging.getLogger(__name__)

_GENERATE_PATHS = {
    Mode.CORELAP: "/corelap/generate",
    Mode.ALDEP: "/aldep/generate",
}


class SyncClient:
    def __init__(
        self,
        api_base: str = config.API_BASE,
        live_sync_url: str | None = config.LIVE_SYNC_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.live_sync_url = live_sync_url
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.api_base}{path}"
        logger.debug("%s %s", method, url)
        try:
            r = self.session.request(method, url, **kwargs)
            r.raise_for_status()
        except requests.RequestException as e:
            raise SyncError(f"{method} {path} failed: {e}") from e
        try:
            return r.json()
        except ValueError as e:
            raise PayloadError(f"{method} {path} returned invalid JSON") from e

    def create_project(self, name: str, user_id: str) -> Project:
        payload = self._request(
            "POST", "/craft/project", json={"name": name, "userId": user_id}
        )
        return extract_project(payload, fallback_name=name)

    def submit_layout(self, body: dict) -> str:
        """Submit a CRAFT layout; returns the layout id to poll."""
        payload = self._request("POST", "/craft/layout", json=body)
        return extract_layout_id(payload)

    def fetch_result(self, layout_id: str) -> OptimizationResult:
        payload = self._request(
            "GET", "/craft/result", params={"layoutId": layout_id}
        )
        return normalize_result(payload)

    def generate(self, mode: Mode, body: dict) -> list[OptimizationResult]:
        """Run a build algorithm; returns its candidates best-first as sent."""
        path = _GENERATE_PATHS.get(Mode(mode))
        if path is None:
            raise ValueError(f"{mode} has no generate endpoint")
        return normalize_candidates(self._request("POST", path, json=body))

    def sync_live_layout(self, departments: list[Department]) -> bool:
        """Push the roster to the live-edit endpoint. Never raises."""
        if not self.live_sync_url:
            return False
        try:
            r = requests.post(
                self.live_sync_url, json=[d.to_dict() for d in departments]
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Sync layout failed: %s", e)
            return False
        return True
