"""Tests for SyncClient against a recording fake of requests.Session."""

import pytest
import requests

from planner.errors import PayloadError, SyncError
from planner.sync import SyncClient
from planner.types import Department, Mode


class FakeResponse:
    def __init__(self, payload=None, status=200, invalid_json=False):
        self.payload = payload
        self.status_code = status
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    """Returns queued responses and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self):
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self._next()

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self._next()


def _client(*responses, live_sync_url="http://live/api/plant-layout"):
    session = FakeSession(*responses)
    client = SyncClient(
        api_base="http://opt/api/", live_sync_url=live_sync_url, session=session
    )
    return client, session


class TestRequests:
    def test_create_project(self):
        client, session = _client(FakeResponse({"id": 12, "name": "Hall"}))
        project = client.create_project("Hall", "u1")
        assert (project.id, project.name) == ("12", "Hall")
        method, url, kwargs = session.calls[0]
        assert (method, url) == ("POST", "http://opt/api/craft/project")
        assert kwargs["json"] == {"name": "Hall", "userId": "u1"}

    def test_submit_and_fetch(self):
        client, session = _client(
            FakeResponse({"layoutId": "L9"}),
            FakeResponse(
                {
                    "assignment": [
                        {"name": "A", "x": 1, "y": 0, "width": 2, "height": 2}
                    ],
                    "totalCost": 3,
                }
            ),
        )
        assert client.submit_layout({"name": "P"}) == "L9"
        result = client.fetch_result("L9")
        assert result.score == 3.0
        method, url, kwargs = session.calls[1]
        assert (method, url) == ("GET", "http://opt/api/craft/result")
        assert kwargs["params"] == {"layoutId": "L9"}

    def test_generate_routes_by_mode(self):
        placement = {"name": "A", "x": 0, "y": 0, "width": 1, "height": 1}
        client, session = _client(
            FakeResponse({"candidates": [{"placements": [placement]}]}),
            FakeResponse({"placements": [placement]}),
        )
        assert len(client.generate(Mode.CORELAP, {})) == 1
        assert len(client.generate(Mode.ALDEP, {})) == 1
        assert [c[1] for c in session.calls] == [
            "http://opt/api/corelap/generate",
            "http://opt/api/aldep/generate",
        ]

    def test_generate_craft_rejected(self):
        client, _ = _client()
        with pytest.raises(ValueError):
            client.generate(Mode.CRAFT, {})


class TestErrors:
    def test_http_error_status(self):
        client, _ = _client(FakeResponse({"error": "boom"}, status=500))
        with pytest.raises(SyncError):
            client.submit_layout({})

    def test_transport_error(self):
        client, _ = _client(requests.ConnectionError("refused"))
        with pytest.raises(SyncError):
            client.create_project("P", "u")

    def test_invalid_json(self):
        client, _ = _client(FakeResponse(invalid_json=True))
        with pytest.raises(PayloadError):
            client.submit_layout({})

    def test_missing_layout_id(self):
        client, _ = _client(FakeResponse({"status": "queued"}))
        with pytest.raises(PayloadError):
            client.submit_layout({})


class TestLiveSync:
    """The live push goes through requests.post, never the shared session."""

    def _dept(self):
        return Department("dept_1", "A", 0, 0, 5, 5, 30)

    def _patch_post(self, monkeypatch, *responses):
        fake = FakeSession(*responses)
        monkeypatch.setattr(requests, "post", fake.post)
        return fake

    def test_posts_roster(self, monkeypatch):
        client, session = _client()
        posted = self._patch_post(monkeypatch, FakeResponse({}))
        assert client.sync_live_layout([self._dept()])
        method, url, kwargs = posted.calls[0]
        assert url == "http://live/api/plant-layout"
        assert kwargs["json"][0]["gridSize"] == 30
        assert session.calls == []

    def test_failure_is_logged_not_raised(self, monkeypatch, caplog):
        client, _ = _client()
        self._patch_post(monkeypatch, requests.ConnectionError("refused"))
        assert not client.sync_live_layout([self._dept()])
        assert "Sync layout failed" in caplog.text

    def test_error_status_is_logged_not_raised(self, monkeypatch, caplog):
        client, _ = _client()
        self._patch_post(monkeypatch, FakeResponse(status=502))
        assert not client.sync_live_layout([self._dept()])
        assert "Sync layout failed" in caplog.text

    def test_disabled(self, monkeypatch):
        client, session = _client(live_sync_url=None)
        posted = self._patch_post(monkeypatch)
        assert not client.sync_live_layout([self._dept()])
        assert session.calls == []
        assert posted.calls == []
