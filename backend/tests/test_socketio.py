def drain(sio_client):
    return [(pkt['name'], pkt['args'][0] if pkt['args'] else None) for pkt in sio_client.get_received()]


def named(received, name):
    return [payload for event, payload in received if event == name]


def connect_player(connect):
    """Connect a client and return it with its handle from the ``connected`` greeting."""
    sio_client = connect()
    handle = named(drain(sio_client), 'connected')[0]['id']
    return sio_client, handle


def matched_pair(connect):
    alice, alice_id = connect_player(connect)
    bob, bob_id = connect_player(connect)
    alice.emit('join-queue', {'displayName': 'Alice'})
    bob.emit('join-queue', 'Bob')
    match = named(drain(alice), 'match-found')[0]
    assert named(drain(bob), 'match-found') == [match]
    return (alice, alice_id), (bob, bob_id), match


def test_connect_greets_with_handle(connect):
    sio_client, handle = connect_player(connect)
    assert sio_client.is_connected()
    assert isinstance(handle, str) and handle


def test_match_found_in_queue_order(connect, client):
    (_, alice_id), (_, bob_id), match = matched_pair(connect)
    assert match['roomId'].startswith('room_')
    assert match['players'] == [{'id': alice_id, 'name': 'Alice'}, {'id': bob_id, 'name': 'Bob'}]
    assert client.get('/health').get_json()['liveRooms'] == 1


def test_waiting_player_gets_online_count(connect, client):
    alice, _ = connect_player(connect)
    alice.emit('join-queue', {'name': 'Alice'})
    assert named(drain(alice), 'online-count') == [{'count': 1}]
    assert client.get('/health').get_json()['waiting'] == 1


def test_full_game_over_sockets(connect, client):
    (alice, alice_id), (bob, bob_id), match = matched_pair(connect)

    alice.emit('toss-choice', {'choice': 'heads'})
    assert named(drain(alice), 'toss-won') == [{'choice': 'heads'}]
    assert named(drain(bob), 'toss-lost') == [{'opponentChoice': 'heads'}]

    alice.emit('batting-choice', {'choice': 'bat'})
    start = {'currentBatsman': alice_id, 'currentBowler': bob_id, 'phase': 'in_progress'}
    assert named(drain(alice), 'game-start') == [start]
    assert named(drain(bob), 'game-start') == [start]

    alice.emit('make-move', {'number': 4})
    assert named(drain(bob), 'opponent-move') == [{'number': 4}]
    bob.emit('make-move', {'number': 2})
    result = named(drain(alice), 'move-result')[0]
    assert result['runs'] == 4 and result['isOut'] is False

    alice.emit('make-move', {'number': 3})
    bob.emit('make-move', {'number': 3})
    innings = named(drain(bob), 'move-result')[-1]
    assert innings['isOut'] is True
    assert innings['newInnings'] is True
    assert innings['targetScore'] == 5

    bob.emit('make-move', {'number': 5})
    alice.emit('make-move', {'number': 1})
    received = drain(alice)
    finished = named(received, 'game-finished')
    assert len(finished) == 1
    assert finished[0]['winner'] == bob_id
    assert finished[0]['gameEnd'] is True
    assert named(received, 'move-result')[-1] == finished[0]
    drain(bob)

    res = client.get(f"/api/game-logs?gameId={match['roomId']}")
    assert res.status_code == 200
    meta = res.get_json()['data']['metadata']
    assert meta['winner'] == bob_id
    assert meta['status'] == 'completed'
    assert meta['finalScore'][alice_id] == {'runs': 4, 'outs': 1}
    assert client.get('/health').get_json()['liveRooms'] == 0

    # a disconnect after the game is over notifies nobody
    alice.disconnect()
    assert named(drain(bob), 'opponent-disconnected') == []


def test_disconnect_mid_toss_abandons_game(connect, client):
    (alice, _), (bob, _), match = matched_pair(connect)

    alice.disconnect()

    assert named(drain(bob), 'opponent-disconnected') == [{}]
    res = client.get(f"/api/game-logs?gameId={match['roomId']}")
    meta = res.get_json()['data']['metadata']
    assert meta['status'] == 'abandoned'
    assert meta['winner'] is None

    # the survivor can queue again
    bob.emit('join-queue', 'Bob')
    assert named(drain(bob), 'online-count') == [{'count': 1}]


def test_malformed_messages_are_ignored(connect, client):
    alice, _ = connect_player(connect)
    alice.emit('join-queue', {'displayName': '   '})
    alice.emit('join-queue', 42)
    alice.emit('join-queue')
    alice.emit('no-such-event', {'x': 1})
    assert drain(alice) == []
    assert client.get('/health').get_json()['waiting'] == 0


def test_invalid_moves_are_not_relayed(connect):
    (alice, _), (bob, _), _ = matched_pair(connect)
    alice.emit('toss-choice', {'choice': 'heads'})
    alice.emit('batting-choice', {'choice': 'bat'})
    drain(alice)
    drain(bob)

    alice.emit('make-move', {'number': '4'})
    alice.emit('make-move', 4)
    alice.emit('make-move', {'number': True})
    assert drain(bob) == []
