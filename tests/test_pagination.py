import base64
import json
from datetime import datetime

import pytest

from fishlog.models.database import Rod, db
from fishlog.pagination import InvalidCursor, decode_cursor, encode_cursor


def _b64(text):
    return base64.urlsafe_b64encode(text.encode()).decode()


@pytest.mark.parametrize('sort_value, row_id', [
    ('2025-01-10T08:00:00', '5b0c0e0a-4f7e-4d0e-9d55-1d2c3b4a5e6f'),
    ('Wobbler', 'abc'),
    ('', 'x'),
    ('zażółć gęślą jaźń', 'id/with+chars'),
])
def test_cursor_round_trip(sort_value, row_id):
    assert decode_cursor(encode_cursor(sort_value, row_id)) == {'sortValue': sort_value, 'id': row_id}


def test_cursor_encodes_datetimes_as_iso():
    cursor = encode_cursor(datetime(2025, 1, 10, 8, 0, 0, 123456), 'abc')
    assert decode_cursor(cursor)['sortValue'] == '2025-01-10T08:00:00.123456'


def test_cursor_is_url_safe():
    cursor = encode_cursor('??>>??>>', 'id')
    assert '+' not in cursor and '/' not in cursor


@pytest.mark.parametrize('cursor', [
    None,
    '',
    '!!!not base64!!!',
    _b64('not json'),
    _b64(json.dumps(['a', 'b'])),
    _b64(json.dumps({'sortValue': 'a'})),
    _b64(json.dumps({'id': 'a'})),
    _b64(json.dumps({'sortValue': 1, 'id': 'a'})),
    _b64(json.dumps({'sortValue': 'a', 'id': ''})),
    _b64(json.dumps({'sortValue': 'a', 'id': 'b', 'extra': 1})),
    encode_cursor('a', 'b')[:-3],
])
def test_decode_rejects_garbage(cursor):
    with pytest.raises(InvalidCursor):
        decode_cursor(cursor)


def _collect(api, url, **params):
    items = []
    cursor = None
    while True:
        query = dict(params)
        if cursor:
            query['cursor'] = cursor
        response = api.get(url, query_string=query)
        assert response.status_code == 200
        body = response.get_json()
        assert len(body['data']) <= params['limit']
        items.extend(item['id'] for item in body['data'])
        cursor = body['page']['next_cursor']
        if cursor is None:
            return items


@pytest.mark.parametrize('sort', ['name', 'created_at', 'updated_at'])
@pytest.mark.parametrize('order', ['asc', 'desc'])
def test_pages_concatenate_to_the_full_list(api, make, sort, order):
    for number in range(7):
        make.rod(f'Rod {number}')

    paged = _collect(api, '/api/v1/rods', limit=3, sort=sort, order=order)
    full = api.get('/api/v1/rods', query_string={'limit': 100, 'sort': sort, 'order': order}).get_json()

    assert paged == [item['id'] for item in full['data']]
    assert len(paged) == 7


def test_equal_sort_values_are_ordered_by_id(api, owner_id):
    stamp = datetime(2025, 1, 10, 8, 0, 0)
    rods = [Rod(user_id=owner_id, name=f'Rod {n}', created_at=stamp, updated_at=stamp) for n in range(5)]
    db.session.add_all(rods)
    db.session.commit()

    paged = _collect(api, '/api/v1/rods', limit=2, sort='created_at', order='desc')

    assert paged == sorted((rod.id for rod in rods), reverse=True)


def test_three_items_two_per_page(api, make):
    names = {make.rod(name)['id'] for name in ('A', 'B', 'C')}

    first = api.get('/api/v1/rods', query_string={'limit': 2, 'sort': 'created_at', 'order': 'desc'}).get_json()
    assert len(first['data']) == 2
    assert first['page'] == {'limit': 2, 'next_cursor': first['page']['next_cursor']}
    assert first['page']['next_cursor'] is not None

    second = api.get('/api/v1/rods', query_string={
        'limit': 2, 'sort': 'created_at', 'order': 'desc', 'cursor': first['page']['next_cursor'],
    }).get_json()
    assert len(second['data']) == 1
    assert second['page']['next_cursor'] is None
    assert {item['id'] for item in first['data'] + second['data']} == names


def test_invalid_cursor_is_a_validation_error(api, make):
    make.rod('A')

    response = api.get('/api/v1/rods', query_string={'cursor': 'garbage!'})

    assert response.status_code == 400
    error = response.get_json()['error']
    assert error['code'] == 'validation_error'
    assert error['details']['field'] == 'cursor'


def test_cursor_with_wrong_sort_value_type_is_rejected(api, make):
    make.rod('A')
    cursor = encode_cursor('not a date', 'abc')

    response = api.get('/api/v1/rods', query_string={'sort': 'created_at', 'cursor': cursor})

    assert response.status_code == 400
    assert response.get_json()['error']['details']['field'] == 'cursor'


@pytest.mark.parametrize('params', [
    {'limit': 0},
    {'limit': 101},
    {'limit': 'many'},
    {'order': 'sideways'},
    {'sort': 'user_id'},
])
def test_list_query_bounds(api, params):
    response = api.get('/api/v1/rods', query_string=params)

    assert response.status_code == 400
    assert response.get_json()['error']['code'] == 'validation_error'
