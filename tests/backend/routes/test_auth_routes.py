import uuid

import jwt

from backend.auth import jwt_handler
from backend.core import config


def test_access_token_round_trips_subject_and_role() -> None:
    user_id = uuid.uuid4()

    payload = jwt_handler.decode_access_token(jwt_handler.create_access_token(user_id, 'counselor'))

    assert payload['sub'] == str(user_id)
    assert payload['role'] == 'counselor'


def test_me_returns_current_user(client, make_user, headers_for) -> None:
    student = make_user('student', email='asha@campus.edu', first_name='Asha')

    response = client.get('/auth/me', headers=headers_for(student))

    assert response.status_code == 200
    assert response.json()['user'] == {
        'id': str(student.id),
        'email': 'asha@campus.edu',
        'role': 'student',
        'firstName': 'Asha',
        'lastName': student.last_name,
    }


def test_me_rejects_expired_tokens(client, make_user) -> None:
    student = make_user('student')
    token = jwt_handler.create_access_token(student.id, student.role, expires_minutes=-1)

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json() == {'success': False, 'message': 'Invalid token'}


def test_me_rejects_tokens_for_unknown_users(client) -> None:
    token = jwt_handler.create_access_token(uuid.uuid4(), 'student')

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json()['message'] == 'User not found'


def test_me_rejects_non_uuid_subjects(client) -> None:
    token = jwt.encode({'sub': 'someone@campus.edu', 'exp': 4102444800}, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401
    assert response.json()['message'] == 'Invalid token subject'
