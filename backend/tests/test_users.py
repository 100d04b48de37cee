from fastapi.testclient import TestClient

from gym_api.main import app

client = TestClient(app)


def _student_body(**profile):
    return {
        'user_data': {
            'document': '666.666.666-66',
            'full_name': 'Ana Newcomer',
            'email': 'ana@app.com',
            'password': 'AnaPass123!',
        },
        'profile_data': profile,
    }


def _instructor_body(cref='987654-G/MG', email='bruno@app.com', document='888.888.888-88'):
    return {
        'user_data': {'document': document, 'full_name': 'Bruno Coach', 'email': email, 'password': 'BrunoPass123!'},
        'profile_data': {'cref': cref, 'specialization': 'Mobility'},
    }


def test_admin_creates_student_with_profile(admin_headers):
    body = _student_body(height=168, weight=60.5, date_of_birth='1999-01-02', instructor_id=2)
    r = client.post('/api/v1/users/students', json=body, headers=admin_headers)
    assert r.status_code == 201
    user = r.json()['data']['user']
    assert user['role'] == 'Student'
    assert user['status'] == 'Active'
    assert user['profile'] == {'height': 168.0, 'weight': 60.5, 'date_of_birth': '1999-01-02', 'instructor_id': 2}
    assert 'password' not in user and 'password_hash' not in user


def test_instructor_becomes_default_instructor_of_new_student(instructor_headers):
    r = client.post('/api/v1/users/students', json=_student_body(), headers=instructor_headers)
    assert r.status_code == 201
    assert r.json()['data']['user']['profile']['instructor_id'] == 2


def test_instructor_cannot_assign_student_to_someone_else(instructor_headers, other_instructor):
    other_id, _ = other_instructor
    r = client.post('/api/v1/users/students', json=_student_body(instructor_id=other_id), headers=instructor_headers)
    assert r.status_code == 403


def test_student_cannot_create_users(student_headers):
    assert client.post('/api/v1/users/students', json=_student_body(), headers=student_headers).status_code == 403
    assert client.post('/api/v1/users/instructors', json=_instructor_body(), headers=student_headers).status_code == 403


def test_student_instructor_must_be_an_instructor(admin_headers):
    r = client.post('/api/v1/users/students', json=_student_body(instructor_id=3), headers=admin_headers)
    assert r.status_code == 400
    assert 'Instructor' in r.json()['message']


def test_only_admin_creates_instructors_and_cref_is_unique(admin_headers, instructor_headers):
    assert client.post('/api/v1/users/instructors', json=_instructor_body(), headers=instructor_headers).status_code == 403
    r = client.post('/api/v1/users/instructors', json=_instructor_body(), headers=admin_headers)
    assert r.status_code == 201
    assert r.json()['data']['user']['profile']['cref'] == '987654-G/MG'
    dup = client.post(
        '/api/v1/users/instructors',
        json=_instructor_body(cref='123456-G/SP', email='another@app.com', document='999.999.999-99'),
        headers=admin_headers,
    )
    assert dup.status_code == 400
    assert dup.json()['message'] == 'cref already registered'


def test_duplicate_email_and_document_are_rejected(admin_headers):
    body = _student_body()
    body['user_data']['email'] = 'student@app.com'
    r = client.post('/api/v1/users/students', json=body, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['message'] == 'email already registered'
    body = _student_body()
    body['user_data']['document'] = '333.333.333-33'
    r = client.post('/api/v1/users/students', json=body, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['message'] == 'document already registered'


def test_create_validates_formats(admin_headers):
    body = _student_body(height=20)
    body['user_data']['document'] = '12345678900'
    r = client.post('/api/v1/users/students', json=body, headers=admin_headers)
    assert r.status_code == 400
    details = ' '.join(r.json()['details'])
    assert 'document' in details
    assert 'height' in details


def test_create_rejects_profile_fields_of_the_other_role(admin_headers):
    r = client.post('/api/v1/users/students', json=_student_body(cref='111111-G/SP', bio='x'), headers=admin_headers)
    assert r.status_code == 400
    details = ' '.join(r.json()['details'])
    assert 'profile_data.cref' in details
    assert 'profile_data.bio' in details
    body = _instructor_body()
    body['profile_data']['height'] = 180
    r = client.post('/api/v1/users/instructors', json=body, headers=admin_headers)
    assert r.status_code == 400
    assert 'profile_data.height' in ' '.join(r.json()['details'])
    assert client.get('/api/v1/users', headers=admin_headers).json()['results'] == 4


def test_instructor_create_rejects_taken_email(admin_headers):
    r = client.post('/api/v1/users/instructors', json=_instructor_body(email='student@app.com'), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['message'] == 'email already registered'


def test_list_users_is_filtered_by_role(admin_headers, instructor_headers, student_headers, other_instructor):
    r = client.get('/api/v1/users', headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['results'] == 5
    students = client.get('/api/v1/users', params={'role': 'Student'}, headers=admin_headers).json()
    assert sorted(u['id'] for u in students['data']['users']) == [3, 4]

    mine = client.get('/api/v1/users', headers=instructor_headers).json()['data']['users']
    assert sorted(u['id'] for u in mine) == [2, 3, 4]

    _, other_headers = other_instructor
    alone = client.get('/api/v1/users', headers=other_headers).json()['data']['users']
    assert len(alone) == 1

    me = client.get('/api/v1/users', headers=student_headers).json()
    assert me['results'] == 1
    assert me['data']['users'][0]['id'] == 3


def test_get_user_checks_ownership(student_headers, instructor_headers, admin_headers, other_instructor):
    assert client.get('/api/v1/users/4', headers=student_headers).status_code == 403
    r = client.get('/api/v1/users/3', headers=instructor_headers)
    assert r.status_code == 200
    assert r.json()['data']['user']['profile']['instructor_id'] == 2
    _, other_headers = other_instructor
    assert client.get('/api/v1/users/3', headers=other_headers).status_code == 403
    assert client.get('/api/v1/users/1', headers=instructor_headers).status_code == 403
    missing = client.get('/api/v1/users/999', headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()['status'] == 'error'


def test_student_updates_own_profile_but_not_status(student_headers):
    r = client.put(
        '/api/v1/users/3',
        json={'user_data': {'full_name': 'João Updated'}, 'profile_data': {'weight': 72}},
        headers=student_headers,
    )
    assert r.status_code == 200
    user = r.json()['data']['user']
    assert user['full_name'] == 'João Updated'
    assert user['profile']['weight'] == 72.0
    denied = client.put('/api/v1/users/3', json={'user_data': {'status': 'Inactive'}}, headers=student_headers)
    assert denied.status_code == 403


def test_update_requires_a_body_and_matching_profile_fields(student_headers, admin_headers):
    assert client.put('/api/v1/users/3', json={}, headers=student_headers).status_code == 400
    r = client.put('/api/v1/users/3', json={'profile_data': {'cref': '111111-G/SP'}}, headers=student_headers)
    assert r.status_code == 400
    assert r.json()['details'] == ['cref']
    admin_profile = client.put('/api/v1/users/1', json={'profile_data': {'bio': 'hi'}}, headers=admin_headers)
    assert admin_profile.status_code == 400


def test_update_rechecks_uniqueness(student_headers):
    r = client.put('/api/v1/users/3', json={'user_data': {'email': 'admin@app.com'}}, headers=student_headers)
    assert r.status_code == 400
    same = client.put('/api/v1/users/3', json={'user_data': {'email': 'student@app.com'}}, headers=student_headers)
    assert same.status_code == 200


def test_only_admin_reassigns_a_students_instructor(instructor_headers, admin_headers, other_instructor):
    other_id, _ = other_instructor
    r = client.put('/api/v1/users/3', json={'profile_data': {'instructor_id': other_id}}, headers=instructor_headers)
    assert r.status_code == 403
    r = client.put('/api/v1/users/3', json={'profile_data': {'instructor_id': other_id}}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['data']['user']['profile']['instructor_id'] == other_id
    assert client.get('/api/v1/users/3', headers=instructor_headers).status_code == 403


def test_password_change_applies_to_login(student_headers):
    r = client.put('/api/v1/users/3', json={'user_data': {'password': 'BrandNew123!'}}, headers=student_headers)
    assert r.status_code == 200
    login = client.post('/api/v1/auth/login', json={'login': 'student@app.com', 'password': 'BrandNew123!'})
    assert login.status_code == 200


def test_delete_blocked_while_referenced(admin_headers):
    student = client.delete('/api/v1/users/3', headers=admin_headers)
    assert student.status_code == 400
    assert 'workout plans' in student.json()['message']
    instructor = client.delete('/api/v1/users/2', headers=admin_headers)
    assert instructor.status_code == 400
    assert client.get('/api/v1/users/3', headers=admin_headers).status_code == 200


def test_student_with_sessions_only_cannot_be_deleted(instructor_headers, admin_headers):
    created = client.post('/api/v1/users/students', json=_student_body(), headers=instructor_headers)
    new_id = created.json()['data']['user']['id']
    session = {
        'student_id': new_id,
        'session_date': '2024-06-10',
        'executions': [{'exercise_id': 2, 'series_completed': 3, 'repetitions_completed': '8,8,8', 'load_used': '40kg'}],
    }
    assert client.post('/api/v1/sessions', json=session, headers=instructor_headers).status_code == 201
    r = client.delete(f'/api/v1/users/{new_id}', headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['message'] == 'user has training sessions and cannot be deleted'


def test_instructor_with_students_only_cannot_be_deleted(admin_headers, other_instructor):
    other_id, _ = other_instructor
    client.put('/api/v1/users/4', json={'profile_data': {'instructor_id': other_id}}, headers=admin_headers)
    r = client.delete(f'/api/v1/users/{other_id}', headers=admin_headers)
    assert r.status_code == 400
    assert 'assigned students' in r.json()['message']


def test_delete_user_without_references(admin_headers, instructor_headers, other_instructor):
    other_id, _ = other_instructor
    r = client.delete(f'/api/v1/users/{other_id}', headers=admin_headers)
    assert r.status_code == 204
    assert r.content == b''
    assert client.get(f'/api/v1/users/{other_id}', headers=admin_headers).status_code == 404

    created = client.post('/api/v1/users/students', json=_student_body(), headers=instructor_headers)
    new_id = created.json()['data']['user']['id']
    assert client.delete(f'/api/v1/users/{new_id}', headers=instructor_headers).status_code == 204


def test_non_admin_cannot_delete_admin(instructor_headers):
    assert client.delete('/api/v1/users/1', headers=instructor_headers).status_code == 403
