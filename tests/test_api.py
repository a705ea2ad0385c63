"""Tests for the REST surface"""

import json

import pytest
from fastapi.testclient import TestClient

from bpwordzee.main import create_app

from conftest import ENDPOINT, ORIGIN, make_settings, words_payload


@pytest.fixture
def client(network, settings):
    network.add_json(ENDPOINT, words_payload(('CASA', 12), ('SACO', 9), ('OCAS', 9), ('ARO', 2)))
    app = create_app(settings, network.transport())
    with TestClient(app) as test_client:
        yield test_client


def search_params(bonus_table, ronda='1'):
    return {'letras': 'c,a,s,a,r,o,n', 'puntos_extra': json.dumps(bonus_table), 'ronda': ronda}


def test_get_search(client, bonus_table):
    response = client.get('/search', params=search_params(bonus_table))
    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert [w['palabra'] for w in body['data']['palabras']] == ['CASA', 'SACO', 'OCAS', 'ARO']
    assert body['data']['total'] == 4
    assert body['data']['estadisticas']['longitud_4'] == {'total': 3, 'mejores': 3, 'puntos_max': 12, 'puntos_min': 9}


def test_post_search(client, letters, bonus_table):
    response = client.post('/search', json={'letras': letters, 'puntos_extra': bonus_table, 'ronda': 3})
    assert response.status_code == 200
    assert response.json()['data']['total_antes_filtro'] == 4


def test_invalid_round_is_reported(client, bonus_table):
    response = client.get('/search', params=search_params(bonus_table, ronda='9'))
    assert response.status_code == 422
    body = response.json()
    assert body['success'] is False
    assert body['error']['mensaje'] == 'La ronda debe ser un número entre 1 y 5'
    assert body['error']['titulo'] == 'Error al buscar palabras'


def test_unparsable_bonus_table_is_invalid_input(client):
    response = client.get('/search', params={'letras': 'a,b,c,d,e,f,g', 'puntos_extra': '[[', 'ronda': '1'})
    assert response.status_code == 422
    assert response.json()['success'] is False


def test_offline_source_is_a_rejection(client, network, bonus_table):
    network.offline = True
    response = client.get('/search', params=search_params(bonus_table))
    assert response.status_code == 200
    assert response.json() == {
        'success': False,
        'error': {
            'titulo': 'Error al buscar palabras',
            'mensaje': 'Sin conexión',
            'detalle': 'Si el problema persiste, contacta con el administrador.',
        },
    }


def test_malformed_source_body(client, network, bonus_table):
    network.add(ENDPOINT, status=502, content=b'Bad gateway')
    response = client.get('/search', params=search_params(bonus_table))
    assert response.status_code == 502
    assert 'Bad gateway' not in response.json()['error']['mensaje']


def test_assets_are_served_from_cache(client, network):
    calls = network.count(f'{ORIGIN}/front/index.js')
    response = client.get('/assets/front/index.js')
    assert response.status_code == 200
    assert response.content == b'console.log(1)'
    assert network.count(f'{ORIGIN}/front/index.js') == calls


def test_cache_status_and_skip_waiting(client):
    status = client.get('/cache/status').json()
    assert status['version'] == 'v1'
    assert status['active'] == 'bpwordzee-v1'
    assert status['waiting'] is None
    assert status['controlled'] == 1

    response = client.post('/cache/messages', json={'type': 'SKIP_WAITING'})
    assert response.status_code == 200
    assert response.json()['version'] == 'v1'


def test_failed_install_serves_from_network(network):
    app = create_app(make_settings(precache=['./missing.js']), network.transport())
    with TestClient(app) as test_client:
        status = test_client.get('/cache/status').json()
        assert status['active'] is None
        assert test_client.get('/assets/index.html').status_code == 200


@pytest.mark.parametrize('path', ['https://evil.test/secret', 'http://127.0.0.1:8080/admin'])
def test_assets_refuse_other_origins(client, network, path):
    network.add(path, content=b'internal')
    response = client.get(f'/assets/{path}')

    assert response.status_code == 404
    assert response.json()['success'] is False
    assert network.count(path) == 0
    external = client.app.state.registration.storage.get('bpwordzee-external-v1')
    assert not any('evil.test' in key or '8080' in key for key in external.keys())


@pytest.mark.parametrize('message', [{}, {'kind': 'SKIP_WAITING'}])
def test_control_message_needs_a_type(client, message):
    response = client.post('/cache/messages', json=message)
    assert response.status_code == 422
