QUIZ = {'id': 1, 'title': 'Capitals', 'questions': [
    {'question': 'Capital of France?', 'answer': 'Paris'},
]}


def _events(client, name):
    return [pkt['args'][0] for pkt in client.get_received() if pkt['name'] == name]


def _host_room(make_sio, name='Ann'):
    host = make_sio()
    ack = host.emit('room:create', {'playerName': name}, callback=True)
    assert ack['success'] is True
    host.get_received()  # flush
    return host, ack['room']['code']


def test_connect_greets_client(sio_client):
    received = sio_client.get_received()
    assert any(pkt['name'] == 'connected' for pkt in received)


def test_ping_pong(sio_client):
    sio_client.get_received()
    sio_client.emit('ping', {'n': 1})
    assert _events(sio_client, 'pong') == [{'n': 1}]


def test_create_and_join_room(make_sio):
    host, code = _host_room(make_sio)
    guest = make_sio()
    ack = guest.emit('room:join', {'roomCode': code.lower(), 'playerName': 'Bob'}, callback=True)
    assert ack['success'] is True
    assert [p['name'] for p in ack['room']['players']] == ['Ann', 'Bob']

    updates = _events(host, 'room:updated')
    assert updates
    assert [p['name'] for p in updates[-1]['players']] == ['Ann', 'Bob']


def test_room_get_ack(make_sio):
    host, code = _host_room(make_sio)
    ack = make_sio().emit('room:get', {'roomCode': code}, callback=True)
    assert ack['room']['hostPlayerId'] == ack['room']['players'][0]['id']

    ack = host.emit('room:get', {'roomCode': 'XXXXXX'}, callback=True)
    assert ack == {'success': False, 'error': 'Room not found'}


def test_invalid_payload_is_rejected_in_ack(sio_client):
    ack = sio_client.emit('room:create', {'playerName': ''}, callback=True)
    assert ack['success'] is False
    assert ack['error'] == 'Invalid payload'
    assert ack['details']


def test_fifth_player_gets_room_full(make_sio):
    host, code = _host_room(make_sio)
    for i in range(3):
        ack = make_sio().emit('room:join', {'roomCode': code, 'playerName': f'P{i}'}, callback=True)
        assert ack['success'] is True
    ack = make_sio().emit('room:join', {'roomCode': code, 'playerName': 'Late'}, callback=True)
    assert ack == {'success': False, 'error': 'Room is full'}

    room = host.emit('room:get', {'roomCode': code}, callback=True)['room']
    assert len(room['players']) == 4


def test_event_outside_room_reports_error(sio_client):
    sio_client.get_received()
    sio_client.emit('player:ready')
    assert _events(sio_client, 'error') == [{'event': 'player:ready', 'message': 'Not in a room'}]


def test_host_disconnect_hands_over_room(make_sio):
    host, code = _host_room(make_sio)
    guest = make_sio()
    ack = guest.emit('room:join', {'roomCode': code, 'playerName': 'Bob'}, callback=True)
    guest_sid = ack['room']['players'][1]['id']
    guest.get_received()

    host.disconnect()
    received = guest.get_received()
    updated = [pkt['args'][0] for pkt in received if pkt['name'] == 'room:updated']
    left = [pkt['args'][0] for pkt in received if pkt['name'] == 'player:left']
    assert updated[-1]['hostPlayerId'] == guest_sid
    assert updated[-1]['players'] == [{'id': guest_sid, 'name': 'Bob', 'isHost': True, 'isReady': False}]
    assert left == [{'playerName': 'Ann'}]


def test_game_round_trip(make_sio):
    host, code = _host_room(make_sio)
    guest = make_sio()
    guest.emit('room:join', {'roomCode': code, 'playerName': 'Bob'}, callback=True)
    host.get_received()
    guest.get_received()

    host.emit('quiz:load', {'quiz': QUIZ})
    assert _events(guest, 'quiz:loaded')[0]['quiz']['title'] == 'Capitals'

    guest.emit('game:start')
    started = _events(host, 'game:started')
    assert started[0]['scores'] == {'Ann': 0, 'Bob': 0}

    guest.emit('game:submitAnswer', {'isCorrect': True, 'answer': 'Paris', 'points': 3})
    received = host.get_received()
    names = [pkt['name'] for pkt in received]
    assert names.index('game:answerSubmitted') < names.index('game:scoreUpdated')
    scores = [pkt['args'][0] for pkt in received if pkt['name'] == 'game:scoreUpdated']
    assert scores == [{'Ann': 0, 'Bob': 3}]

    host.emit('game:nextQuestion')
    ended = _events(guest, 'game:ended')
    assert ended[0]['scores'] == {'Ann': 0, 'Bob': 3}


def test_start_without_quiz_reports_error(make_sio):
    host, _ = _host_room(make_sio)
    host.emit('game:start')
    assert _events(host, 'error') == [{'event': 'game:start', 'message': 'No quiz loaded'}]
