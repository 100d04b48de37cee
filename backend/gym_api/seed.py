"""Demo data loaded into an empty store at start-up and before each test.

The records mirror a small gym: one Admin, one Instructor with two
Students, a handful of exercises and modifiers, a plan per student and a
logged session per plan.

Demo logins (email / password):
- admin@app.com / AdminPass123!
- instructor@app.com / InstructorPass123!
- student@app.com / StudentPass123!
- studentmaria@app.com / StudentPass123!
"""

from datetime import date
from functools import lru_cache

from sqlmodel import Session, select

from . import models
from .models import Role
from .services import hash_password

ADMIN_PASSWORD = "AdminPass123!"
INSTRUCTOR_PASSWORD = "InstructorPass123!"
STUDENT_PASSWORD = "StudentPass123!"


@lru_cache(maxsize=None)
def _hashed(password: str) -> str:
    # pbkdf2 is slow on purpose; the suite reseeds before every test.
    return hash_password(password)


def store_is_empty(session: Session) -> bool:
    return session.exec(select(models.User.id)).first() is None


def _plan_item(exercise_id, series_count, repetitions, load, order_index, modifier_ids, observations=None):
    item = models.WorkoutPlanItem(
        exercise_id=exercise_id,
        series_count=series_count,
        repetitions_expected=repetitions,
        load_suggested=load,
        observations=observations,
        order_index=order_index,
    )
    item.modifier_links = [
        models.WorkoutPlanItemModifier(modifier_id=mid, position=pos) for pos, mid in enumerate(modifier_ids)
    ]
    return item


def _execution(exercise_id, series, repetitions, load, modifier_ids, observations=None):
    execution = models.Execution(
        exercise_id=exercise_id,
        series_completed=series,
        repetitions_completed=repetitions,
        load_used=load,
        observations=observations,
    )
    execution.modifier_links = [
        models.ExecutionModifier(modifier_id=mid, position=pos) for pos, mid in enumerate(modifier_ids)
    ]
    return execution


def load_demo_data(session: Session) -> None:
    """Insert the demo records with fixed ids."""
    session.add_all([
        models.User(
            id=1, document="111.111.111-11", full_name="Admin User", email="admin@app.com",
            role=Role.ADMIN, password_hash=_hashed(ADMIN_PASSWORD),
        ),
        models.User(
            id=2, document="222.222.222-22", full_name="Carlos Instructor", email="instructor@app.com",
            role=Role.INSTRUCTOR, password_hash=_hashed(INSTRUCTOR_PASSWORD),
        ),
        models.User(
            id=3, document="333.333.333-33", full_name="João Student", email="student@app.com",
            role=Role.STUDENT, password_hash=_hashed(STUDENT_PASSWORD),
        ),
        models.User(
            id=4, document="444.444.444-44", full_name="Maria Student", email="studentmaria@app.com",
            role=Role.STUDENT, password_hash=_hashed(STUDENT_PASSWORD),
        ),
    ])
    session.add_all([
        models.InstructorProfile(
            user_id=2, cref="123456-G/SP", specialization="Strength training, Hypertrophy",
            bio="Ten years coaching strength athletes.",
        ),
        models.StudentProfile(user_id=3, height=175, weight=70.5, date_of_birth=date(1998, 3, 15), instructor_id=2),
        models.StudentProfile(user_id=4, height=162, weight=58.0, date_of_birth=date(2000, 7, 20), instructor_id=2),
    ])
    session.add_all([
        models.Exercise(
            id=1, name="Barbell Bench Press", muscle_category="Chest",
            description="Compound press for chest, shoulders and triceps.",
            general_observation="Keep the shoulder blades retracted.",
            video_link="https://www.youtube.com/watch?v=rT7DgCr-3pg",
        ),
        models.Exercise(
            id=2, name="Barbell Back Squat", muscle_category="Legs",
            description="Compound lift for quadriceps and glutes.",
            general_observation="Keep the spine neutral through the movement.",
            video_link="https://www.youtube.com/watch?v=ultWZbUMPL8",
        ),
        models.Exercise(
            id=3, name="Bent-over Row", muscle_category="Back",
            description="Horizontal pull for the upper back.",
            general_observation="Hinge at the hips and pull towards the navel.",
        ),
    ])
    session.add_all([
        models.Modifier(id=1, name="Warm Up Set", description="Light set to prepare the muscles."),
        models.Modifier(id=2, name="Work Set", description="Main set performed at the target load."),
        models.Modifier(id=3, name="Drop Set", description="Reduce the load and continue without rest."),
    ])

    plan_one = models.WorkoutPlan(
        id=1, name="Hypertrophy Plan A", description="Upper body focus for muscle growth.",
        instructor_id=2, student_id=3, start_date=date(2024, 5, 1), end_date=date(2024, 7, 31),
    )
    plan_one.items = [
        _plan_item(1, 4, "8-12", "50kg", 1, [2], observations="Control the eccentric."),
        _plan_item(3, 3, "10-15", "30kg", 2, [2]),
    ]
    plan_two = models.WorkoutPlan(
        id=2, name="Strength Plan B", description="Lower body strength block.",
        instructor_id=2, student_id=4, start_date=date(2024, 5, 15), end_date=date(2024, 8, 15),
    )
    plan_two.items = [_plan_item(2, 5, "3-5", "80kg", 1, [1, 2])]
    session.add_all([plan_one, plan_two])

    session_one = models.TrainingSession(
        id=1, student_id=3, workout_plan_id=1, session_date=date(2024, 5, 1),
        observations="Felt strong today.",
    )
    session_one.executions = [
        _execution(1, 4, "10,10,9,8", "45kg", [2]),
        _execution(3, 3, "12,12,10", "25kg", [2]),
    ]
    session_two = models.TrainingSession(id=2, student_id=4, workout_plan_id=2, session_date=date(2024, 5, 16))
    session_two.executions = [_execution(2, 5, "5,5,4,4,3", "75kg", [1, 2], observations="Last set was hard.")]
    session.add_all([session_one, session_two])
    session.commit()
