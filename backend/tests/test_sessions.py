from fastapi.testclient import TestClient

from gym_api.main import app

client = TestClient(app)


def _session_body(**overrides):
    body = {
        'student_id': 3,
        'workout_plan_id': 1,
        'session_date': '2024-05-08',
        'observations': 'Second week.',
        'executions': [
            {'exercise_id': 1, 'series_completed': 4, 'repetitions_completed': '10,10,10,8', 'load_used': '47.5kg',
             'modifier_ids': [1, 2]},
        ],
    }
    body.update(overrides)
    return body


def test_student_logs_own_session(student_headers):
    r = client.post('/api/v1/sessions', json=_session_body(), headers=student_headers)
    assert r.status_code == 201
    session = r.json()['data']['session']
    assert session['student']['id'] == 3
    assert session['workout_plan']['name'] == 'Hypertrophy Plan A'
    execution = session['executions'][0]
    assert execution['exercise']['name'] == 'Barbell Bench Press'
    assert [m['name'] for m in execution['modifiers']] == ['Warm Up Set', 'Work Set']


def test_session_without_plan(instructor_headers):
    r = client.post('/api/v1/sessions', json=_session_body(student_id=4, workout_plan_id=None), headers=instructor_headers)
    assert r.status_code == 201
    assert r.json()['data']['session']['workout_plan'] is None


def test_student_cannot_log_for_someone_else(student_headers, other_instructor):
    r = client.post('/api/v1/sessions', json=_session_body(student_id=4, workout_plan_id=2), headers=student_headers)
    assert r.status_code == 403
    _, other_headers = other_instructor
    assert client.post('/api/v1/sessions', json=_session_body(), headers=other_headers).status_code == 403


def test_session_references_are_checked(admin_headers, instructor_headers):
    foreign_plan = client.post('/api/v1/sessions', json=_session_body(student_id=4), headers=instructor_headers)
    assert foreign_plan.status_code == 400
    assert 'does not belong' in foreign_plan.json()['message']
    missing_plan = client.post('/api/v1/sessions', json=_session_body(workout_plan_id=50), headers=admin_headers)
    assert missing_plan.status_code == 400
    not_student = client.post('/api/v1/sessions', json=_session_body(student_id=2, workout_plan_id=None), headers=admin_headers)
    assert not_student.status_code == 400
    bad_exercise = _session_body(executions=[
        {'exercise_id': 9, 'series_completed': 1, 'repetitions_completed': '5', 'load_used': '10kg'},
    ])
    assert client.post('/api/v1/sessions', json=bad_exercise, headers=admin_headers).status_code == 400


def test_session_body_validation(student_headers):
    assert client.post('/api/v1/sessions', json=_session_body(executions=[]), headers=student_headers).status_code == 400
    zero_series = _session_body(executions=[
        {'exercise_id': 1, 'series_completed': 0, 'repetitions_completed': '5', 'load_used': '10kg'},
    ])
    assert client.post('/api/v1/sessions', json=zero_series, headers=student_headers).status_code == 400


def test_list_sessions_by_role(admin_headers, instructor_headers, student_headers, other_instructor):
    assert client.get('/api/v1/sessions', headers=admin_headers).json()['results'] == 2
    by_date = client.get('/api/v1/sessions', params={'session_date': '2024-05-16'}, headers=admin_headers).json()
    assert [s['id'] for s in by_date['data']['sessions']] == [2]
    by_plan = client.get('/api/v1/sessions', params={'workout_plan_id': 1}, headers=instructor_headers).json()
    assert [s['id'] for s in by_plan['data']['sessions']] == [1]
    assert client.get('/api/v1/sessions', headers=instructor_headers).json()['results'] == 2
    own = client.get('/api/v1/sessions', headers=student_headers).json()
    assert [s['id'] for s in own['data']['sessions']] == [1]
    other = client.get('/api/v1/sessions', params={'student_id': 4}, headers=student_headers).json()
    assert other['results'] == 0
    _, other_headers = other_instructor
    assert client.get('/api/v1/sessions', headers=other_headers).json()['results'] == 0


def test_get_session_checks_access(maria_headers, instructor_headers):
    assert client.get('/api/v1/sessions/1', headers=maria_headers).status_code == 403
    r = client.get('/api/v1/sessions/1', headers=instructor_headers)
    assert r.status_code == 200
    assert len(r.json()['data']['session']['executions']) == 2
    assert client.get('/api/v1/sessions/404', headers=instructor_headers).status_code == 404


def test_update_replaces_executions(student_headers):
    executions = [{'exercise_id': 3, 'series_completed': 2, 'repetitions_completed': '15,15', 'load_used': '20kg'}]
    r = client.put('/api/v1/sessions/1', json={'observations': 'Light day', 'executions': executions}, headers=student_headers)
    assert r.status_code == 200
    session = r.json()['data']['session']
    assert session['observations'] == 'Light day'
    assert [e['exercise_id'] for e in session['executions']] == [3]
    assert session['executions'][0]['modifier_ids'] == []


def test_update_rechecks_student_and_plan(admin_headers, student_headers, instructor_headers):
    assert client.put('/api/v1/sessions/1', json={'student_id': 4}, headers=admin_headers).status_code == 400
    moved = client.put('/api/v1/sessions/1', json={'student_id': 4, 'workout_plan_id': 2}, headers=admin_headers)
    assert moved.status_code == 200
    assert client.get('/api/v1/sessions/1', headers=student_headers).status_code == 403
    assert client.put('/api/v1/sessions/2', json={'student_id': 3, 'workout_plan_id': None}, headers=student_headers).status_code == 403
    unlink = client.put('/api/v1/sessions/2', json={'workout_plan_id': None}, headers=instructor_headers)
    assert unlink.status_code == 200
    assert unlink.json()['data']['session']['workout_plan_id'] is None


def test_update_checks_modifiers(instructor_headers):
    executions = [{'exercise_id': 2, 'series_completed': 1, 'repetitions_completed': '5', 'load_used': '80kg', 'modifier_ids': [99]}]
    r = client.put('/api/v1/sessions/2', json={'executions': executions}, headers=instructor_headers)
    assert r.status_code == 400
    assert r.json()['details'] == {'modifier_ids': [99]}


def test_delete_session(maria_headers, instructor_headers):
    assert client.delete('/api/v1/sessions/1', headers=maria_headers).status_code == 403
    assert client.delete('/api/v1/sessions/2', headers=instructor_headers).status_code == 204
    assert client.get('/api/v1/sessions/2', headers=instructor_headers).status_code == 404
