import pytest
from sqlmodel import Session

from gym_api import models
from gym_api.database import engine, reset_db
from gym_api.main import rate_limiter
from gym_api.services import AuthService, hash_password

ADMIN_ID = 1
INSTRUCTOR_ID = 2
STUDENT_ID = 3
MARIA_ID = 4


@pytest.fixture(autouse=True)
def fresh_store():
    """Rebuild the in-memory store from the demo seed before every test."""
    reset_db(seed=True)
    rate_limiter.reset()
    yield


def _bearer(user_id):
    with Session(engine) as session:
        user = session.get(models.User, user_id)
        token = AuthService.issue_token(user)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers():
    return _bearer(ADMIN_ID)


@pytest.fixture
def instructor_headers():
    return _bearer(INSTRUCTOR_ID)


@pytest.fixture
def student_headers():
    return _bearer(STUDENT_ID)


@pytest.fixture
def maria_headers():
    return _bearer(MARIA_ID)


@pytest.fixture
def other_instructor():
    """An instructor with no students, plans or sessions; returns (id, headers)."""
    with Session(engine) as session:
        user = models.User(
            document='555.555.555-55',
            full_name='Other Instructor',
            email='other@app.com',
            role=models.Role.INSTRUCTOR,
            password_hash=hash_password('OtherPass123!'),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        session.add(models.InstructorProfile(user_id=user.id, cref='654321-G/RJ'))
        session.commit()
        user_id = user.id
    return user_id, _bearer(user_id)
