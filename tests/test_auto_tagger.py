"""
Tests for the vision model client (services/auto_tagger.py)
"""
import base64
import os
import time

import pytest
import requests

import config
from services import auto_tagger
from tests.conftest import make_image_bytes, make_gif_bytes


class FakeResponse:
    def __init__(self, payload=None, status=200, body_error=None):
        self.payload = payload
        self.status = status
        self.body_error = body_error

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Server Error")

    def json(self):
        if self.body_error:
            raise ValueError(self.body_error)
        return self.payload


class FakeSession:
    """Records requests; behaviour is set per test through class attributes."""
    instances = []
    response = FakeResponse({"response": "cat blue_eyes"})
    hang = False
    raise_error = None

    def __init__(self):
        self.closed = False
        self.requests = []
        FakeSession.instances.append(self)

    def post(self, url, json=None, timeout=None):
        self.requests.append((url, json, timeout))
        if self.raise_error:
            raise self.raise_error
        if self.hang:
            # Blocks like a stuck HTTP call until the session is closed
            deadline = time.monotonic() + 2
            while not self.closed and time.monotonic() < deadline:
                time.sleep(0.01)
            raise requests.ConnectionError("session closed")
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session(monkeypatch):
    monkeypatch.setattr(config, 'ENABLE_AUTO_TAGGER', True)
    monkeypatch.setattr(config, 'OLLAMA_HOST', 'http://ollama.test:11434/')
    monkeypatch.setattr(auto_tagger.requests, 'Session', FakeSession)
    FakeSession.instances = []
    FakeSession.response = FakeResponse({"response": "Cat, blue eyes, cat"})
    FakeSession.hang = False
    FakeSession.raise_error = None
    return FakeSession


@pytest.fixture
def image_path(temp_dir):
    path = os.path.join(temp_dir, 'frame.png')
    with open(path, 'wb') as f:
        f.write(make_image_bytes('PNG'))
    return path


@pytest.mark.unit
class TestGenerateTags:

    @pytest.mark.asyncio
    async def test_sends_generate_request_and_parses(self, fake_session, image_path):
        tags = await auto_tagger.generate_tags(image_path)

        assert tags == ['cat', 'blue_eyes']
        session = fake_session.instances[0]
        url, payload, _ = session.requests[0]
        assert url == 'http://ollama.test:11434/api/generate'
        assert payload['model'] == config.AUTO_TAGGER_MODEL
        assert payload['prompt'] == config.AUTO_TAGGER_PROMPT
        assert payload['stream'] is False
        assert base64.b64decode(payload['images'][0]).startswith(b'\x89PNG')
        assert session.closed

    @pytest.mark.asyncio
    async def test_gif_sends_first_frame(self, fake_session, temp_dir):
        path = os.path.join(temp_dir, 'anim.gif')
        with open(path, 'wb') as f:
            f.write(make_gif_bytes())

        await auto_tagger.generate_tags(path)

        payload = fake_session.instances[0].requests[0][1]
        assert base64.b64decode(payload['images'][0]).startswith(b'\x89PNG')

    @pytest.mark.asyncio
    async def test_disabled_returns_empty_without_request(self, fake_session, image_path, monkeypatch):
        monkeypatch.setattr(config, 'ENABLE_AUTO_TAGGER', False)
        assert await auto_tagger.generate_tags(image_path) == []
        assert fake_session.instances == []

    @pytest.mark.asyncio
    async def test_timeout_returns_empty_and_closes_session(self, fake_session, image_path):
        fake_session.hang = True
        started = time.monotonic()

        tags = await auto_tagger.generate_tags(image_path, timeout=0.1)

        assert tags == []
        assert time.monotonic() - started < 1.5
        assert fake_session.instances[0].closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize('response,error', [
        (FakeResponse(status=500), None),
        (FakeResponse(body_error='not json'), None),
        (FakeResponse({"unexpected": True}), None),
        (None, requests.ConnectionError('refused')),
    ])
    async def test_failures_are_absorbed(self, fake_session, image_path, response, error):
        fake_session.response = response
        fake_session.raise_error = error
        assert await auto_tagger.generate_tags(image_path) == []

    @pytest.mark.asyncio
    async def test_unreadable_image_absorbed(self, fake_session, temp_dir):
        assert await auto_tagger.generate_tags(os.path.join(temp_dir, 'gone.png')) == []
        assert fake_session.instances[0].requests == []

    @pytest.mark.asyncio
    async def test_max_tags_applied(self, fake_session, image_path, monkeypatch):
        monkeypatch.setattr(config, 'AUTO_TAGGER_MAX_TAGS', 2)
        fake_session.response = FakeResponse({"response": "a b c d"})
        assert await auto_tagger.generate_tags(image_path) == ['a', 'b']
