import json

import fakeredis
import pytest

from valkey_context.storage.scripts import COMPRESSED_DOCUMENT, DELETE_NESTED_SCRIPT, SET_NESTED_SCRIPT

KEY = 'nodered:context:global:doc'


@pytest.fixture
def server():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


def set_nested(r, path, value):
    return r.eval(SET_NESTED_SCRIPT, 1, KEY, path, json.dumps(value))


def delete_nested(r, path):
    return r.eval(DELETE_NESTED_SCRIPT, 1, KEY, path)


def stored(r):
    raw = r.get(KEY)
    return None if raw is None else json.loads(raw)


def test_set_creates_and_extends_document(server):
    assert set_nested(server, 'profile.name', 'Alice') == 1
    assert set_nested(server, 'profile.age', 30) == 1
    assert stored(server) == {'profile': {'name': 'Alice', 'age': 30}}


def test_set_keeps_siblings_off_the_path(server):
    server.set(KEY, json.dumps({'tags': ['x', 'y'], 'n': {'a': 1}}))
    assert set_nested(server, 'n.b', {'deep': True}) == 1
    assert stored(server) == {'tags': ['x', 'y'], 'n': {'a': 1, 'b': {'deep': True}}}


@pytest.mark.parametrize('root', ['5', '"text"', 'null', '[1,2]', '[{"x":0}]'])
def test_set_replaces_non_object_root(server, root):
    server.set(KEY, root)
    assert set_nested(server, 'x', 1) == 1
    assert stored(server) == {'x': 1}


def test_set_replaces_arrays_and_scalars_on_the_path(server):
    server.set(KEY, json.dumps({'items': [1, 2], 'n': 5}))
    assert set_nested(server, 'items.k', 1) == 1
    assert set_nested(server, 'n.m', 2) == 1
    assert stored(server) == {'items': {'k': 1}, 'n': {'m': 2}}


def test_set_with_no_segments_writes_nothing(server):
    assert set_nested(server, '', 1) == 0
    assert server.get(KEY) is None


def test_delete_leaf(server):
    server.set(KEY, json.dumps({'tags': {'x': 1, 'y': 2}}))
    assert delete_nested(server, 'tags.x') == 1
    assert stored(server) == {'tags': {'y': 2}}
    assert delete_nested(server, 'tags.x') == 0


def test_delete_on_missing_key_does_not_create_it(server):
    assert delete_nested(server, 'a.b') == 0
    assert server.get(KEY) is None


@pytest.mark.parametrize('document, path', [
    ({'a': 5}, 'a.b'),
    ({'a': [{'b': 1}]}, 'a.0.b'),
    ({'a': {'b': 1}}, 'a.c.d'),
])
def test_delete_through_non_object_is_a_noop(server, document, path):
    raw = json.dumps(document)
    server.set(KEY, raw)
    assert delete_nested(server, path) == 0
    assert server.get(KEY) == raw


def test_delete_on_array_root_is_a_noop(server):
    server.set(KEY, '[1,2]')
    assert delete_nested(server, '1') == 0
    assert server.get(KEY) == '[1,2]'


def test_compressed_documents_are_refused(server):
    server.set(KEY, 'gzip:H4sIAAAAAAAA')
    assert set_nested(server, 'a', 1) == COMPRESSED_DOCUMENT
    assert delete_nested(server, 'a') == COMPRESSED_DOCUMENT
    assert server.get(KEY) == 'gzip:H4sIAAAAAAAA'
