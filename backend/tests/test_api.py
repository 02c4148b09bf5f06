from handcricket.services.games.engine import HandCricketGame

PLAYERS = [{'id': 'A', 'name': 'Alice'}, {'id': 'B', 'name': 'Bob'}]


def record_game(game_logger, room_id):
    # A bats first for 4, B chases 5 and wins
    game_logger.start_session(room_id, PLAYERS)
    game = HandCricketGame(room_id, ('A', 'B'))
    events = game.choose_toss('A', 'heads') + game.choose_role('A', 'bat')
    for handle, number in [('A', 4), ('B', 2), ('A', 3), ('B', 3), ('B', 5), ('A', 1)]:
        events += game.submit_move(handle, number)
    for event in events:
        game_logger.record(event)
    return game_logger.end_session(room_id, game.final_score(), game.winner)


def test_index_and_health(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()

    health = client.get('/health').get_json()
    assert health == {'status': 'healthy', 'waiting': 0, 'liveRooms': 0}


def test_cors_header(client):
    res = client.get('/api/logs', headers={'Origin': 'http://example.com'})
    assert res.headers.get('Access-Control-Allow-Origin') == '*'


def test_logs_empty(client):
    res = client.get('/api/logs')
    assert res.status_code == 200
    assert res.get_json() == {'success': True, 'data': [], 'count': 0}


def test_logs_list_and_filter(flask_app, client):
    game_logger = flask_app.extensions['game_logger']
    record_game(game_logger, 'room_1')
    record_game(game_logger, 'room_2')

    body = client.get('/api/logs').get_json()
    assert body['success'] is True
    assert body['count'] == 2
    assert {r['metadata']['gameId'] for r in body['data']} == {'room_1', 'room_2'}

    body = client.get('/api/logs?gameId=room_2').get_json()
    assert body['count'] == 1
    assert body['data'][0]['metadata']['gameId'] == 'room_2'


def test_stats(flask_app, client):
    record_game(flask_app.extensions['game_logger'], 'room_1')
    body = client.get('/api/stats').get_json()
    assert body['success'] is True
    assert 'timestamp' in body
    stats = body['data']
    assert stats['totalGames'] == 1
    assert stats['totalMoves'] == 6
    assert stats['playerStats']['Bob']['gamesWon'] == 1
    assert stats['playerStats']['Alice']['totalRuns'] == 4
    assert len(stats['recentGames']) == 1


def test_game_log_requires_id(client):
    res = client.get('/api/game-logs')
    assert res.status_code == 400
    assert res.get_json() == {'success': False, 'error': 'gameId parameter required'}


def test_game_log_not_found(client):
    res = client.get('/api/game-logs?gameId=room_missing')
    assert res.status_code == 404
    assert res.get_json()['success'] is False


def test_game_log_found(flask_app, client):
    record_game(flask_app.extensions['game_logger'], 'room_1')
    res = client.get('/api/game-logs?gameId=room_1')
    assert res.status_code == 200
    body = res.get_json()
    assert body['gameId'] == 'room_1'
    meta = body['data']['metadata']
    assert meta['winner'] == 'B'
    assert meta['finalScore'] == {'A': {'runs': 4, 'outs': 1}, 'B': {'runs': 5, 'outs': 0}}
    assert body['data']['events'][-1]['type'] == 'game_end'


def test_config_get(client):
    body = client.get('/api/config').get_json()
    assert body['success'] is True
    assert body['config']['targets']['file']['format'] == 'json'
    assert body['description']['currentSessions'] == 0
    assert body['description']['totalGames'] == 0


def test_config_update_merges(client):
    res = client.post('/api/config', json={'targets': {'file': {'format': 'csv'}}})
    assert res.status_code == 200
    body = res.get_json()
    assert body['message'] == 'Configuration updated'
    assert body['config']['targets']['file']['format'] == 'csv'
    assert body['config']['targets']['file']['separateFiles'] is True
    assert client.get('/api/config').get_json()['config']['targets']['file']['format'] == 'csv'


def test_config_rejects_invalid_json(client):
    res = client.post('/api/config', data='{not json', content_type='application/json')
    assert res.status_code == 400
    assert res.get_json() == {'success': False, 'error': 'Invalid JSON'}

    res = client.post('/api/config', json=['enabled'])
    assert res.status_code == 400


def test_config_rejects_unknown_format(client):
    res = client.post('/api/config', json={'targets': {'file': {'format': 'xml'}}})
    assert res.status_code == 400
    assert res.get_json()['success'] is False
    assert client.get('/api/config').get_json()['config']['targets']['file']['format'] == 'json'


def test_config_rejects_bad_values_and_keeps_current(client, tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('x')
    before = client.get('/api/config').get_json()['config']

    for body in [
        {'targets': {'file': {'directory': str(blocker / 'sub')}}},
        {'targets': {'file': {'directory': 5}}},
        {'targets': {'file': {'directory': '  '}}},
        {'enabled': 'false'},
        {'targets': {'file': {'separateFiles': 1}}},
        {'targets': {'console': {'level': 'loud'}}},
        {'retention': {'maxFiles': '10'}},
        {'retention': {'maxAge': True}},
    ]:
        res = client.post('/api/config', json=body)
        assert res.status_code == 400, body
        assert res.get_json()['success'] is False

    assert client.get('/api/config').get_json()['config'] == before


def test_unexpected_error_returns_500(flask_app, client, monkeypatch):
    def explode():
        raise RuntimeError('boom')

    monkeypatch.setattr(flask_app.extensions['game_logger'], 'get_game_stats', explode)
    res = client.get('/api/stats')
    assert res.status_code == 500
    assert res.get_json() == {'success': False, 'error': 'boom'}


def test_cleanup_command(flask_app):
    record_game(flask_app.extensions['game_logger'], 'room_1')
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['logs-cleanup'])
    assert result.exit_code == 0
    assert 'Removed 0 log file(s).' in result.output
