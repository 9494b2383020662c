from pathlib import Path
from typing import Iterator

from fastapi.testclient import TestClient
import pytest

from .. import server
from .common import no_user_config, write_config  # noqa: F401


@pytest.fixture
def client(no_user_config: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.delenv(server.EnvConfig.KEY, raising=False)
    server.get_cleaner.cache_clear()
    try:
        yield TestClient(server.app)
    finally:
        server.get_cleaner.cache_clear()


def test_status(client: TestClient) -> None:
    body = client.post('/status').json()
    assert body['rules'] > 0
    # version comes from the installed package metadata
    assert 'version' in body


def test_status_error(client: TestClient, tmp_path: Path) -> None:
    '''
    If the config is broken, the server should still respond and report the error
    '''
    cfg_path = tmp_path / 'config.py'
    cfg_path.write_text('raise RuntimeError("broken")')
    server.EnvConfig.set(cfg_path)
    try:
        body = client.get('/status').json()
    finally:
        server.EnvConfig.set(None)
    assert 'ERROR' in body['rules']
    assert 'broken' in body['rules']


def test_clean(client: TestClient) -> None:
    url = 'https://example.com/page?id=1&utm_source=newsletter'
    body = client.post('/clean', json={'url': url}).json()
    assert body['url'] == 'https://example.com/page?id=1'
    info = body['info']
    assert info['original'] == url
    assert info['removed'] == [{'key': 'utm_source', 'value': 'newsletter'}]
    assert info['fullClean'] is True
    assert info['isNewHost'] is False
    assert info['match'][0]['name'] == 'Global'


def test_clean_invalid(client: TestClient) -> None:
    body = client.post('/clean', json={'url': 'not a url'}).json()
    assert body['url'] == 'not a url'
    assert body['info']['fullClean'] is False
    assert len(body['log']) == 1


def test_clean_many(client: TestClient) -> None:
    urls = [
        'https://example.com/?fbclid=1',
        'https://l.facebook.com/l.php?u=https%3A%2F%2Fexample.com%2F&h=abc',
        'nope',
    ]
    body = client.post('/clean_many', json={'urls': urls}).json()
    assert [r['url'] for r in body] == ['https://example.com/', 'https://example.com/', 'nope']


def test_config(client: TestClient, tmp_path: Path) -> None:
    def cfg() -> None:
        USE_DEFAULT_RULES = False
        RULES = [{'name': 'only', 'match': r'example\.com', 'rules': ['x']}]

    cfg_path = tmp_path / 'config.py'
    write_config(cfg_path, cfg)
    server.EnvConfig.set(cfg_path)
    try:
        assert client.post('/status').json()['rules'] == 1
        body = client.post('/clean', json={'url': 'https://example.com/?x=1&fbclid=2'}).json()
    finally:
        server.EnvConfig.set(None)
    assert body['url'] == 'https://example.com/?fbclid=2'
