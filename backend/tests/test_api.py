def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'ok'
    assert data['rooms'] == 0
    assert 'timestamp' in data


def test_list_quizzes_with_filters(client, seeded_quiz):
    res = client.get('/api/quizzes')
    assert res.status_code == 200
    quizzes = res.get_json()['quizzes']
    assert [q['id'] for q in quizzes] == [seeded_quiz]

    assert client.get('/api/quizzes?league=Pub').get_json()['quizzes']
    assert client.get('/api/quizzes?search=capit').get_json()['quizzes']
    assert client.get('/api/quizzes?topic=History').get_json()['quizzes'] == []


def test_questions_come_back_in_play_order(client, seeded_quiz):
    res = client.get(f'/api/quizzes/{seeded_quiz}/questions')
    assert res.status_code == 200
    data = res.get_json()
    assert data['quiz']['topic'] == 'Capitals'
    assert [q['answer'] for q in data['questions']] == ['Paris', 'Berlin', 'Rome']
    assert [q['order_index'] for q in data['questions']] == [0, 1, 2]


def test_questions_for_missing_quiz(client):
    res = client.get('/api/quizzes/999/questions')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Quiz file not found'}


def _create(client, quiz_id, names=('Ann', 'Bob')):
    return client.post('/api/games/create', json={'quiz_file_id': quiz_id, 'player_names': list(names)})


def test_create_game_session(client, seeded_quiz):
    res = _create(client, seeded_quiz)
    assert res.status_code == 201
    data = res.get_json()
    session = data['session']
    assert session['status'] == 'setup'
    assert session['player_names'] == ['Ann', 'Bob']
    assert session['scores'] == {'Ann': 0, 'Bob': 0}
    assert session['current_question_id'] == data['questions'][0]['id']
    assert len(data['questions']) == 3

    quiz = client.get(f'/api/quizzes/{seeded_quiz}/questions').get_json()['quiz']
    assert quiz['times_played'] == 1

    res = client.get(f"/api/games/{session['id']}")
    assert res.get_json()['session']['id'] == session['id']


def test_create_game_validation(client, seeded_quiz):
    res = _create(client, seeded_quiz, names=('Solo',))
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Invalid input'

    res = client.post('/api/games/create', data='not json', content_type='text/plain')
    assert res.status_code == 400

    res = _create(client, 999)
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Quiz file not found'


def test_create_game_for_empty_quiz(flask_app, client):
    from mimir import db
    from mimir.models import QuizFile
    quiz = QuizFile(file_name='empty.xlsx', author='Ada', topic='Nothing', league='Pub',
                    total_questions=0, total_rounds=0)
    db.session.add(quiz)
    db.session.commit()
    res = _create(client, quiz.id)
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Quiz file has no questions'


def test_missing_session(client):
    assert client.get('/api/games/404').status_code == 404
    assert client.post('/api/games/404/complete', json={}).status_code == 404


def _answer(client, session_id, question_id, **overrides):
    body = {
        'question_id': question_id,
        'player_id': 1,
        'player_name': 'Ann',
        'spoken_answer': 'Paris',
        'result': 'correct',
        'is_addressed': True,
        'time_taken': 4,
        'attempt_order': 0,
        'points_awarded': 3,
    }
    body.update(overrides)
    return client.post(f'/api/games/{session_id}/answer', json=body)


def test_answer_overrule_and_complete(client, seeded_quiz):
    created = _create(client, seeded_quiz).get_json()
    session_id = created['session']['id']
    paris, berlin = created['questions'][0]['id'], created['questions'][1]['id']

    res = _answer(client, session_id, paris)
    assert res.status_code == 201
    assert res.get_json()['answer']['points_awarded'] == 3
    session = client.get(f'/api/games/{session_id}').get_json()['session']
    assert session['status'] == 'in_progress'
    assert session['scores'] == {'Ann': 3, 'Bob': 0}

    wrong = _answer(client, session_id, berlin, player_id=2, player_name='Bob', spoken_answer='Munich',
                    result='incorrect', points_awarded=0).get_json()['answer']

    res = client.post(f'/api/games/{session_id}/overrule', json={
        'question_id': berlin,
        'original_answer_id': wrong['id'],
        'challenger_id': 2,
        'challenger_name': 'Bob',
        'claim_type': 'correct',
        'original_result': 'incorrect',
        'new_result': 'correct',
        'points_adjustment': 3,
    }, headers={'X-Forwarded-For': '203.0.113.9, 10.0.0.1'})
    assert res.status_code == 201
    assert res.get_json()['overrule']['points_adjustment'] == 3
    assert client.get(f'/api/games/{session_id}').get_json()['session']['scores'] == {'Ann': 3, 'Bob': 3}

    res = client.post(f'/api/games/{session_id}/complete', json={'scores': {'Ann': 3, 'Bob': 3}})
    assert res.status_code == 200
    session = res.get_json()['session']
    assert session['status'] == 'completed'
    assert session['completed_at'] is not None


def test_answer_validation(client, seeded_quiz):
    created = _create(client, seeded_quiz).get_json()
    session_id = created['session']['id']
    res = _answer(client, session_id, created['questions'][0]['id'], result='maybe')
    assert res.status_code == 400
    assert res.get_json()['details']


def test_overrule_needs_existing_answer(client, seeded_quiz):
    created = _create(client, seeded_quiz).get_json()
    res = client.post(f"/api/games/{created['session']['id']}/overrule", json={
        'question_id': created['questions'][0]['id'],
        'original_answer_id': 12345,
        'challenger_id': 1,
        'challenger_name': 'Ann',
        'claim_type': 'incorrect',
        'original_result': 'correct',
        'new_result': 'incorrect',
        'points_adjustment': -1,
    })
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Original answer not found'


def test_overrule_rejects_unknown_claim(client, seeded_quiz):
    created = _create(client, seeded_quiz).get_json()
    session_id = created['session']['id']
    question_id = created['questions'][0]['id']
    answer = _answer(client, session_id, question_id).get_json()['answer']
    res = client.post(f'/api/games/{session_id}/overrule', json={
        'question_id': question_id,
        'original_answer_id': answer['id'],
        'challenger_id': 2,
        'challenger_name': 'Bob',
        'claim_type': 'maybe',
        'original_result': 'correct',
        'new_result': 'incorrect',
        'points_adjustment': -1,
    })
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Invalid input'
    assert any('claim_type' in d['loc'] for d in res.get_json()['details'])


def test_audit_trail_records_actions(client, seeded_quiz):
    from mimir.models import AuditLog
    created = _create(client, seeded_quiz).get_json()
    _answer(client, created['session']['id'], created['questions'][0]['id'])
    actions = [row.action for row in AuditLog.query.order_by(AuditLog.id).all()]
    assert actions == ['create_game', 'submit_answer']
