from nhie import socketio
from nhie.services.rooms.fanout import fanout


def _events(sio_client, name):
    return [pkt['args'][0] for pkt in sio_client.get_received('/ws') if pkt['name'] == name]


def _names(received):
    return [pkt['name'] for pkt in received]


def _ensure_connected(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')


def test_socket_connect_and_ping(sio_client):
    _ensure_connected(sio_client)
    received = sio_client.get_received('/ws')
    assert 'connected' in _names(received)

    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _events(sio_client, 'pong') == [{'n': 1}]


def test_join_room_subscribes_and_sends_state(sio_client, make_room):
    _ensure_connected(sio_client)
    sio_client.get_received('/ws')
    room_id, ids = make_room()

    sio_client.emit('join-room', {'roomId': room_id}, namespace='/ws')
    [state] = _events(sio_client, 'room-data')
    assert state['id'] == room_id
    assert [p['userId'] for p in state['players']] == ids
    assert len(fanout.subscribers(room_id)) == 1

    sio_client.emit('leave-room', {'roomId': room_id}, namespace='/ws')
    assert _events(sio_client, 'left') == [{'roomId': room_id}]
    assert fanout.subscribers(room_id) == set()


def test_join_missing_room_reports_error(sio_client):
    _ensure_connected(sio_client)
    sio_client.get_received('/ws')
    sio_client.emit('join-room', {'roomId': 9999}, namespace='/ws')
    [err] = _events(sio_client, 'error')
    assert err == {'message': 'Room not found', 'code': 'not_found'}


def test_disconnect_drops_session(flask_app, make_room):
    room_id, _ = make_room()
    other = socketio.test_client(flask_app, namespace='/ws')
    other.emit('join-room', {'roomId': room_id}, namespace='/ws')
    assert len(fanout.subscribers(room_id)) == 1
    other.disconnect(namespace='/ws')
    assert fanout.subscribers(room_id) == set()


def test_round_events_are_broadcast(sio_client, client, make_room):
    _ensure_connected(sio_client)
    room_id, (a, b, c) = make_room(max_rounds=1)
    sio_client.emit('join-room', {'roomId': room_id}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/rooms/{room_id}/start', json={'userId': a})
    [started] = _events(sio_client, 'game-started')
    assert started['currentRound'] == 1
    assert set(started) == {'roomId', 'currentRound', 'currentQuestion', 'players'}

    client.post(f'/api/rooms/{room_id}/answers', json={'userId': a, 'answer': True})
    assert _events(sio_client, 'player-answered') == [{'roomId': room_id, 'userId': a}]

    client.post(f'/api/rooms/{room_id}/answers', json={'userId': b, 'answer': True})
    client.post(f'/api/rooms/{room_id}/answers', json={'userId': c, 'answer': False})
    received = sio_client.get_received('/ws')
    assert _names(received) == ['player-answered', 'player-answered', 'all-players-answered']
    summary = received[-1]['args'][0]
    assert summary['yesCount'] == 2
    assert summary['noCount'] == 1
    assert {p['userId']: p['points'] for p in summary['players']} == {a: 0, b: 0, c: 10}
    assert sorted(summary['answers'], key=lambda x: x['userId']) == sorted([
        {'userId': a, 'answer': True},
        {'userId': b, 'answer': True},
        {'userId': c, 'answer': False},
    ], key=lambda x: x['userId'])

    client.post(f'/api/rooms/{room_id}/next-round', json={'userId': a})
    [ended] = _events(sio_client, 'game-ended')
    assert [w['userId'] for w in ended['winner']] == [c]
    assert len(ended['players']) == 3


def test_actions_over_socket(sio_client, make_room):
    _ensure_connected(sio_client)
    room_id, (a, b) = make_room(names=('A', 'B'), max_rounds=2)
    sio_client.emit('join-room', {'roomId': room_id}, namespace='/ws')
    sio_client.get_received('/ws')

    sio_client.emit('start-game', {'roomId': room_id, 'userId': b}, namespace='/ws')
    [err] = _events(sio_client, 'error')
    assert err['code'] == 'forbidden'

    sio_client.emit('start-game', {'roomId': room_id, 'userId': a}, namespace='/ws')
    assert len(_events(sio_client, 'game-started')) == 1

    sio_client.emit('submit-answer', {'roomId': room_id, 'userId': a, 'answer': True}, namespace='/ws')
    sio_client.emit('submit-answer', {'roomId': room_id, 'userId': a, 'answer': True}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['player-answered', 'error']
    assert received[-1]['args'][0]['code'] == 'duplicate_answer'

    sio_client.emit('next-round', {'roomId': room_id, 'userId': a}, namespace='/ws')
    [err] = _events(sio_client, 'error')
    assert err['code'] == 'round_incomplete'

    sio_client.emit('submit-answer', {'roomId': room_id, 'userId': b, 'answer': False}, namespace='/ws')
    sio_client.emit('next-round', {'roomId': room_id, 'userId': a}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['player-answered', 'all-players-answered', 'round-started']
    assert received[-1]['args'][0]['currentRound'] == 2


def test_errors_go_only_to_sender(flask_app, sio_client, make_room):
    _ensure_connected(sio_client)
    room_id, (a, b, c) = make_room()
    other = socketio.test_client(flask_app, namespace='/ws')
    for cl in (sio_client, other):
        cl.emit('join-room', {'roomId': room_id}, namespace='/ws')
        cl.get_received('/ws')

    other.emit('next-round', {'roomId': room_id, 'userId': a}, namespace='/ws')
    assert [p['name'] for p in other.get_received('/ws')] == ['error']
    assert sio_client.get_received('/ws') == []
    other.disconnect(namespace='/ws')


def test_malformed_payload_reports_error(sio_client):
    _ensure_connected(sio_client)
    sio_client.get_received('/ws')
    for event in ('join-room', 'submit-answer', 'next-round'):
        sio_client.emit(event, 5, namespace='/ws')
        [err] = _events(sio_client, 'error')
        assert err == {'message': 'Invalid payload', 'code': 'validation_error'}


def test_join_completed_room_sends_state_without_subscribing(sio_client, make_room):
    from nhie.services.rooms import controller
    _ensure_connected(sio_client)
    room_id, (a, b) = make_room(names=('A', 'B'), max_rounds=1)
    controller.start(room_id, a)
    controller.submit_answer(room_id, a, True)
    controller.submit_answer(room_id, b, True)
    controller.advance_round(room_id, a)
    sio_client.get_received('/ws')

    sio_client.emit('join-room', {'roomId': room_id}, namespace='/ws')
    [state] = _events(sio_client, 'room-data')
    assert state['status'] == 'completed'
    assert fanout.subscribers(room_id) == set()
    assert room_id not in fanout.rooms()
