"""
Pytest configuration and fixtures for bpwordzee tests
"""

import json
from typing import Callable, Dict, List

import httpx
import pytest

from bpwordzee.config import Config

ORIGIN = 'http://app.test'
ENDPOINT = 'http://app.test/api/bpwordzee'
CDN_URL = 'https://cdn.example.com/lib.css'


class FakeNetwork:
    """Routes requests by URL and records every call that reached the network."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[str] = []
        self.offline = False

    def add(self, url: str, status: int = 200, content: bytes = b'ok', **kwargs):
        self.routes[url] = lambda request: httpx.Response(status, content=content, **kwargs)

    def add_json(self, url: str, payload, status: int = 200):
        self.routes[url] = lambda request: httpx.Response(status, json=payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        if self.offline:
            raise httpx.ConnectError('network down', request=request)
        base = str(request.url).split('?', 1)[0]
        route = self.routes.get(str(request.url)) or self.routes.get(base)
        if route is None:
            return httpx.Response(404, content=b'not found')
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, url: str) -> int:
        return sum(1 for call in self.calls if call.split('?', 1)[0] == url)


@pytest.fixture
def network():
    """Fake network with the app shell and one CDN asset available"""
    net = FakeNetwork()
    net.add(f'{ORIGIN}/', content=b'<html></html>')
    net.add(f'{ORIGIN}/index.html', content=b'<html></html>')
    net.add(f'{ORIGIN}/front/index.js', content=b'console.log(1)')
    net.add(CDN_URL, content=b'body{}')
    return net


def make_settings(version: str = 'v1', **cache) -> Config:
    overrides = {
        'app': {'origin': ORIGIN},
        'word_source': {'endpoint': ENDPOINT},
        'cache': {
            'version': version,
            'precache': ['./', './index.html', './front/index.js'],
            'external': [CDN_URL],
            'offline_message': 'Sin conexión',
            **cache,
        },
    }
    return Config(config_path='does-not-exist.yaml', overrides=overrides)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def bonus_table():
    return [[''] * 3, ['DL', '', '', ''], [''] * 5, ['', 'TL', '', '', '', ''], [''] * 7]


@pytest.fixture
def letters():
    return list('casaron')


def words_payload(*pairs) -> dict:
    return {'success': True, 'data': {'palabras': [{word: score} for word, score in pairs]}}


def json_body(response: httpx.Response):
    return json.loads(response.content)
