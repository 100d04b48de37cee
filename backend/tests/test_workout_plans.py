from fastapi.testclient import TestClient

from gym_api.main import app

client = TestClient(app)


def _plan_body(**overrides):
    body = {
        'name': 'Conditioning Block',
        'description': 'Four weeks of full body work.',
        'student_id': 3,
        'start_date': '2024-09-01',
        'end_date': '2024-09-30',
        'items': [
            {'exercise_id': 3, 'series_count': 3, 'repetitions_expected': '12', 'order_index': 2, 'modifier_ids': [2]},
            {'exercise_id': 2, 'series_count': 4, 'repetitions_expected': '8-10', 'load_suggested': '60kg',
             'order_index': 1, 'modifier_ids': [1, 2, 1]},
        ],
    }
    body.update(overrides)
    return body


def test_instructor_creates_plan_they_own(instructor_headers):
    r = client.post('/api/v1/workout-plans', json=_plan_body(), headers=instructor_headers)
    assert r.status_code == 201
    plan = r.json()['data']['workout_plan']
    assert plan['instructor_id'] == 2
    assert plan['student']['full_name'] == 'João Student'
    assert plan['instructor']['email'] == 'instructor@app.com'
    assert [i['order_index'] for i in plan['items']] == [1, 2]
    first = plan['items'][0]
    assert first['exercise']['name'] == 'Barbell Back Squat'
    assert first['modifier_ids'] == [1, 2]
    assert [m['name'] for m in first['modifiers']] == ['Warm Up Set', 'Work Set']


def test_instructor_cannot_create_plan_for_another_instructor(instructor_headers, other_instructor):
    other_id, _ = other_instructor
    r = client.post('/api/v1/workout-plans', json=_plan_body(instructor_id=other_id), headers=instructor_headers)
    assert r.status_code == 403


def test_admin_must_name_a_real_instructor(admin_headers):
    missing = client.post('/api/v1/workout-plans', json=_plan_body(), headers=admin_headers)
    assert missing.status_code == 400
    assert 'instructor_id' in missing.json()['message']
    wrong_role = client.post('/api/v1/workout-plans', json=_plan_body(instructor_id=4), headers=admin_headers)
    assert wrong_role.status_code == 400
    ok = client.post('/api/v1/workout-plans', json=_plan_body(instructor_id=2), headers=admin_headers)
    assert ok.status_code == 201


def test_plan_student_must_be_a_student(instructor_headers):
    r = client.post('/api/v1/workout-plans', json=_plan_body(student_id=1), headers=instructor_headers)
    assert r.status_code == 400
    assert 'Student' in r.json()['message']


def test_students_cannot_create_plans(student_headers):
    assert client.post('/api/v1/workout-plans', json=_plan_body(), headers=student_headers).status_code == 403


def test_plan_body_validation(instructor_headers):
    assert client.post('/api/v1/workout-plans', json=_plan_body(end_date='2024-08-01'), headers=instructor_headers).status_code == 400
    assert client.post('/api/v1/workout-plans', json=_plan_body(items=[]), headers=instructor_headers).status_code == 400
    bad_item = _plan_body(items=[{'exercise_id': 1, 'series_count': 0, 'repetitions_expected': '10', 'order_index': 1}])
    assert client.post('/api/v1/workout-plans', json=bad_item, headers=instructor_headers).status_code == 400


def test_plan_items_must_reference_existing_catalog_entries(instructor_headers):
    unknown_exercise = _plan_body(items=[{'exercise_id': 42, 'series_count': 3, 'repetitions_expected': '10', 'order_index': 1}])
    r = client.post('/api/v1/workout-plans', json=unknown_exercise, headers=instructor_headers)
    assert r.status_code == 400
    assert r.json()['details'] == {'exercise_id': 42}
    unknown_modifier = _plan_body(items=[
        {'exercise_id': 1, 'series_count': 3, 'repetitions_expected': '10', 'order_index': 1, 'modifier_ids': [2, 77]},
    ])
    r = client.post('/api/v1/workout-plans', json=unknown_modifier, headers=instructor_headers)
    assert r.status_code == 400
    assert r.json()['details'] == {'modifier_ids': [77]}


def test_list_plans_by_role(admin_headers, instructor_headers, student_headers, other_instructor):
    assert client.get('/api/v1/workout-plans', headers=admin_headers).json()['results'] == 2
    filtered = client.get('/api/v1/workout-plans', params={'student_id': 4}, headers=admin_headers).json()
    assert [p['id'] for p in filtered['data']['workout_plans']] == [2]
    assert client.get('/api/v1/workout-plans', headers=instructor_headers).json()['results'] == 2
    mine = client.get('/api/v1/workout-plans', headers=student_headers).json()
    assert [p['id'] for p in mine['data']['workout_plans']] == [1]
    snooping = client.get('/api/v1/workout-plans', params={'student_id': 4}, headers=student_headers).json()
    assert snooping['results'] == 0
    _, other_headers = other_instructor
    assert client.get('/api/v1/workout-plans', headers=other_headers).json()['results'] == 0


def test_get_plan_checks_access(student_headers, maria_headers, other_instructor):
    r = client.get('/api/v1/workout-plans/1', headers=student_headers)
    assert r.status_code == 200
    items = r.json()['data']['workout_plan']['items']
    assert [i['exercise']['name'] for i in items] == ['Barbell Bench Press', 'Bent-over Row']
    assert client.get('/api/v1/workout-plans/1', headers=maria_headers).status_code == 403
    _, other_headers = other_instructor
    assert client.get('/api/v1/workout-plans/1', headers=other_headers).status_code == 403
    assert client.get('/api/v1/workout-plans/99', headers=student_headers).status_code == 404


def test_update_replaces_items(instructor_headers):
    new_items = [{'exercise_id': 2, 'series_count': 5, 'repetitions_expected': '5', 'order_index': 1, 'modifier_ids': [3]}]
    r = client.put('/api/v1/workout-plans/2', json={'name': 'Strength Plan B2', 'items': new_items}, headers=instructor_headers)
    assert r.status_code == 200
    plan = r.json()['data']['workout_plan']
    assert plan['name'] == 'Strength Plan B2'
    assert len(plan['items']) == 1
    assert plan['items'][0]['modifiers'][0]['name'] == 'Drop Set'
    again = client.get('/api/v1/workout-plans/2', headers=instructor_headers).json()['data']['workout_plan']
    assert len(again['items']) == 1


def test_update_rules(instructor_headers, admin_headers, other_instructor, student_headers):
    other_id, other_headers = other_instructor
    assert client.put('/api/v1/workout-plans/1', json={'name': 'Mine now'}, headers=other_headers).status_code == 403
    assert client.put('/api/v1/workout-plans/1', json={'name': 'Mine now'}, headers=student_headers).status_code == 403
    early_end = client.put('/api/v1/workout-plans/1', json={'end_date': '2024-04-01'}, headers=instructor_headers)
    assert early_end.status_code == 400
    reassign = client.put('/api/v1/workout-plans/1', json={'instructor_id': other_id}, headers=instructor_headers)
    assert reassign.status_code == 403
    by_admin = client.put('/api/v1/workout-plans/1', json={'instructor_id': other_id}, headers=admin_headers)
    assert by_admin.status_code == 200
    assert by_admin.json()['data']['workout_plan']['instructor']['id'] == other_id
    assert client.put('/api/v1/workout-plans/1', json={}, headers=admin_headers).status_code == 400


def test_cannot_move_plan_with_sessions_to_another_student(instructor_headers):
    r = client.put('/api/v1/workout-plans/1', json={'student_id': 4}, headers=instructor_headers)
    assert r.status_code == 400


def test_delete_plan_blocked_while_sessions_link_it(instructor_headers, student_headers):
    r = client.delete('/api/v1/workout-plans/1', headers=instructor_headers)
    assert r.status_code == 400
    assert 'sessions' in r.json()['message']
    assert client.delete('/api/v1/sessions/1', headers=student_headers).status_code == 204
    assert client.delete('/api/v1/workout-plans/1', headers=instructor_headers).status_code == 204
    assert client.get('/api/v1/workout-plans/1', headers=instructor_headers).status_code == 404


def test_deleted_plan_frees_its_exercises(admin_headers, instructor_headers):
    created = client.post('/api/v1/exercises', json={'name': 'Lunge', 'muscle_category': 'Legs'}, headers=admin_headers)
    ex_id = created.json()['data']['exercise']['id']
    items = [{'exercise_id': ex_id, 'series_count': 3, 'repetitions_expected': '10', 'order_index': 1}]
    plan = client.post('/api/v1/workout-plans', json=_plan_body(items=items), headers=instructor_headers)
    plan_id = plan.json()['data']['workout_plan']['id']
    assert client.delete(f'/api/v1/exercises/{ex_id}', headers=admin_headers).status_code == 400
    assert client.delete(f'/api/v1/workout-plans/{plan_id}', headers=instructor_headers).status_code == 204
    assert client.delete(f'/api/v1/exercises/{ex_id}', headers=admin_headers).status_code == 204
