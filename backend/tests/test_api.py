from datetime import datetime, timezone


def submit(client, player_id, score, name=None):
    payload = {'player_id': player_id, 'score': score}
    if name is not None:
        payload['display_name'] = name
    return client.post('/api/submit-score', json=payload)


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'live' in res.get_json()['message']


def test_first_submission_creates_player(client):
    res = submit(client, '42', 50, name='alice')
    assert res.status_code == 200
    body = res.get_json()
    assert body['success'] is True
    assert body['player']['cumulative_score'] == 50
    assert body['player']['epoch_score'] == 50
    assert body['player']['multiplier'] == 1

    player = client.get('/api/player/42').get_json()
    assert player['display_name'] == 'alice'
    assert player['cumulative_score'] == 50
    assert player['epoch_score'] == 50
    assert player['booster_active'] is False
    assert player['referral_count'] == 0
    assert player['epoch_start'] == '2024-01-15T00:00:00+00:00'


def test_numeric_player_id_is_accepted(client):
    assert submit(client, 7001, 5).status_code == 200
    assert client.get('/api/player/7001').get_json()['cumulative_score'] == 5


def test_submissions_accumulate_and_rename(client):
    submit(client, '42', 10, name='alice')
    submit(client, '42', 15, name='alice2')
    player = client.get('/api/player/42').get_json()
    assert player['cumulative_score'] == 25
    assert player['epoch_score'] == 25
    assert player['display_name'] == 'alice2'


def test_booster_multiplies_score(client):
    assert submit(client, '42', 50).get_json()['player']['cumulative_score'] == 50

    res = client.post('/api/booster', json={'player_id': '42'})
    assert res.status_code == 200
    assert res.get_json()['player']['booster_active'] is True

    body = submit(client, '42', 50).get_json()['player']
    assert body['multiplier'] == 10
    assert body['points'] == 500
    assert body['cumulative_score'] == 550
    assert body['epoch_score'] == 550


def test_booster_expires(client, clock):
    submit(client, '42', 1)
    client.post('/api/booster', json={'player_id': '42'})
    clock.advance(seconds=3600)
    body = submit(client, '42', 50).get_json()['player']
    assert body['multiplier'] == 1
    assert body['booster_active'] is False


def test_booster_extends_open_window(client, clock):
    submit(client, '42', 1)
    first = client.post('/api/booster', json={'player_id': '42'}).get_json()['player']
    clock.advance(seconds=600)
    second = client.post('/api/booster', json={'player_id': '42'}).get_json()['player']
    assert first['booster_expiry'] == '2024-01-20T01:00:00+00:00'
    assert second['booster_expiry'] == '2024-01-20T02:00:00+00:00'


def test_booster_for_unknown_player(client):
    res = client.post('/api/booster', json={'player_id': 'ghost'})
    assert res.status_code == 404
    assert res.get_json()['error'] == 'not_found'


def test_fractional_scores_are_truncated(client):
    body = submit(client, '42', 2.9).get_json()['player']
    assert body['points'] == 2
    client.post('/api/booster', json={'player_id': '42'})
    body = submit(client, '42', 1.25).get_json()['player']
    assert body['points'] == 12
    assert body['cumulative_score'] == 14


def test_invalid_scores_are_rejected_without_side_effects(client):
    for bad in [0, -5, '10', None, True]:
        res = submit(client, '42', bad)
        assert res.status_code == 400
        assert res.get_json()['error'] == 'invalid_input'
    assert client.get('/api/player/42').status_code == 404


def test_oversized_scores_are_rejected(client):
    for huge in [10 ** 19, 1e300]:
        res = submit(client, '42', huge)
        assert res.status_code == 400
        assert res.get_json()['error'] == 'invalid_input'
    assert client.get('/api/player/42').status_code == 404

    assert submit(client, '42', 2 ** 62).status_code == 200
    res = submit(client, '42', 2 ** 62)
    assert res.status_code == 400
    assert res.get_json()['error'] == 'invalid_input'
    player = client.get('/api/player/42').get_json()
    assert player['cumulative_score'] == 2 ** 62
    assert player['epoch_score'] == 2 ** 62


def test_missing_player_id_rejected(client):
    res = client.post('/api/submit-score', json={'score': 10})
    assert res.status_code == 400


def test_unknown_player_rejected_when_auto_create_disabled(flask_app, client):
    flask_app.config['AUTO_CREATE_PLAYERS'] = False
    res = submit(client, 'new', 10)
    assert res.status_code == 404
    # wallet save still creates the player
    assert client.post('/api/save-wallet', json={'player_id': 'new', 'wallet': 'EQabc'}).status_code == 200
    assert submit(client, 'new', 10).status_code == 200


def test_save_wallet_upserts(client):
    res = client.post('/api/save-wallet', json={'player_id': '42', 'wallet': 'EQfirst', 'display_name': 'alice'})
    assert res.status_code == 200
    client.post('/api/save-wallet', json={'player_id': '42', 'wallet': 'EQsecond'})
    player = client.get('/api/player/42').get_json()
    assert player['wallet'] == 'EQsecond'
    assert player['display_name'] == 'alice'
    assert player['cumulative_score'] == 0


def test_save_wallet_requires_wallet(client):
    res = client.post('/api/save-wallet', json={'player_id': '42', 'wallet': '  '})
    assert res.status_code == 400


def test_get_unknown_player(client):
    res = client.get('/api/player/nobody')
    assert res.status_code == 404
    assert res.get_json()['success'] is False


def test_epoch_score_resets_lazily_at_rollover(client, clock):
    submit(client, '42', 100)
    submit(client, '43', 30)
    clock.set(datetime(2024, 1, 29, 12, tzinfo=timezone.utc))

    # read before any write: stale score reads as zero, cumulative untouched
    player = client.get('/api/player/42').get_json()
    assert player['epoch_score'] == 0
    assert player['cumulative_score'] == 100
    assert player['epoch_start'] == '2024-01-29T00:00:00+00:00'

    body = submit(client, '42', 5).get_json()['player']
    assert body['epoch_score'] == 5
    assert body['cumulative_score'] == 105

    # player 43 was never touched and is left out of the epoch ranking
    board = client.get('/api/competition-leaderboard').get_json()
    assert [e['player_id'] for e in board['entries']] == ['42']


def test_all_players_share_the_global_epoch(client, clock):
    submit(client, 'early', 10)
    clock.set(datetime(2024, 1, 28, tzinfo=timezone.utc))
    submit(client, 'late', 10)
    clock.set(datetime(2024, 1, 29, 1, tzinfo=timezone.utc))
    assert client.get('/api/player/early').get_json()['epoch_score'] == 0
    assert client.get('/api/player/late').get_json()['epoch_score'] == 0


def test_admin_players_requires_secret(client):
    submit(client, '42', 10)
    assert client.get('/api/admin/players').status_code == 403
    assert client.get('/api/admin/players?secret=wrong').status_code == 403
    res = client.get('/api/admin/players?secret=admin-secret')
    assert res.status_code == 200
    assert [p['player_id'] for p in res.get_json()['players']] == ['42']


def test_admin_players_disabled_without_secret(flask_app, client):
    flask_app.config['ADMIN_SECRET'] = ''
    assert client.get('/api/admin/players?secret=').status_code == 403
