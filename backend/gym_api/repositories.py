"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users and
profiles, exercises, modifiers, workout plans, training sessions).
Repositories return SQLModel objects and perform commits/refreshes where
appropriate. They do not check permissions; the `is_referenced` /
`exists_for_*` helpers answer the questions the services need for their
referential checks.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_by_email(self, email: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get_by_document(self, document: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.document == document)
        return self.session.exec(stmt).first()

    def get_by_login(self, login: str) -> Optional[models.User]:
        """Return the user whose email, or failing that document, equals `login`."""
        return self.get_by_email(login) or self.get_by_document(login)

    def list(self, role: Optional[models.Role] = None, status: Optional[models.UserStatus] = None) -> List[models.User]:
        stmt = select(models.User)
        if role is not None:
            stmt = stmt.where(models.User.role == role)
        if status is not None:
            stmt = stmt.where(models.User.status == status)
        return self.session.exec(stmt.order_by(models.User.id)).all()

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        existing = self.get_by_email(email)
        return existing is not None and existing.id != exclude_id

    def document_taken(self, document: str, exclude_id: Optional[int] = None) -> bool:
        existing = self.get_by_document(document)
        return existing is not None and existing.id != exclude_id

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete(self, user: models.User) -> None:
        self.session.delete(user)
        self.session.commit()


class ProfileRepository:
    """Student and instructor profiles, both keyed by `user_id`."""
    def __init__(self, session: Session):
        self.session = session

    def get_student_profile(self, user_id: int) -> Optional[models.StudentProfile]:
        return self.session.get(models.StudentProfile, user_id)

    def get_instructor_profile(self, user_id: int) -> Optional[models.InstructorProfile]:
        return self.session.get(models.InstructorProfile, user_id)

    def save(self, profile):
        """Insert or update either kind of profile."""
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def delete_for_user(self, user_id: int) -> None:
        """Remove whichever profile belongs to `user_id` (no-op if none)."""
        for model in (models.StudentProfile, models.InstructorProfile):
            profile = self.session.get(model, user_id)
            if profile is not None:
                self.session.delete(profile)
        self.session.commit()

    def cref_taken(self, cref: str, exclude_user_id: Optional[int] = None) -> bool:
        stmt = select(models.InstructorProfile).where(models.InstructorProfile.cref == cref)
        existing = self.session.exec(stmt).first()
        return existing is not None and existing.user_id != exclude_user_id

    def student_ids_of(self, instructor_id: int) -> List[int]:
        """Ids of every student whose profile names `instructor_id`."""
        stmt = select(models.StudentProfile.user_id).where(models.StudentProfile.instructor_id == instructor_id)
        return list(self.session.exec(stmt).all())

    def has_students(self, instructor_id: int) -> bool:
        stmt = select(models.StudentProfile.user_id).where(models.StudentProfile.instructor_id == instructor_id)
        return self.session.exec(stmt).first() is not None


class ExerciseRepository:
    """CRUD operations for `Exercise` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, exercise: models.Exercise) -> models.Exercise:
        self.session.add(exercise)
        self.session.commit()
        self.session.refresh(exercise)
        return exercise

    def get(self, exercise_id: int) -> Optional[models.Exercise]:
        return self.session.get(models.Exercise, exercise_id)

    def get_by_name(self, name: str) -> Optional[models.Exercise]:
        """Case-insensitive lookup by name."""
        stmt = select(models.Exercise).where(func.lower(models.Exercise.name) == name.lower())
        return self.session.exec(stmt).first()

    def list(self, muscle_category: Optional[str] = None) -> List[models.Exercise]:
        stmt = select(models.Exercise)
        if muscle_category:
            stmt = stmt.where(func.lower(models.Exercise.muscle_category) == muscle_category.lower())
        return self.session.exec(stmt.order_by(models.Exercise.id)).all()

    def save(self, exercise: models.Exercise) -> models.Exercise:
        self.session.add(exercise)
        self.session.commit()
        self.session.refresh(exercise)
        return exercise

    def delete(self, exercise: models.Exercise) -> None:
        self.session.delete(exercise)
        self.session.commit()

    def is_referenced(self, exercise_id: int) -> bool:
        """True while any plan item or execution points at the exercise."""
        in_plans = select(models.WorkoutPlanItem.id).where(models.WorkoutPlanItem.exercise_id == exercise_id)
        if self.session.exec(in_plans).first() is not None:
            return True
        in_sessions = select(models.Execution.id).where(models.Execution.exercise_id == exercise_id)
        return self.session.exec(in_sessions).first() is not None


class ModifierRepository:
    """CRUD operations for `Modifier` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, modifier: models.Modifier) -> models.Modifier:
        self.session.add(modifier)
        self.session.commit()
        self.session.refresh(modifier)
        return modifier

    def get(self, modifier_id: int) -> Optional[models.Modifier]:
        return self.session.get(models.Modifier, modifier_id)

    def get_many(self, modifier_ids: List[int]) -> List[models.Modifier]:
        """Return modifiers in the order of `modifier_ids`, skipping unknown ids."""
        if not modifier_ids:
            return []
        stmt = select(models.Modifier).where(models.Modifier.id.in_(modifier_ids))
        found = {m.id: m for m in self.session.exec(stmt).all()}
        return [found[i] for i in modifier_ids if i in found]

    def get_by_name(self, name: str) -> Optional[models.Modifier]:
        stmt = select(models.Modifier).where(func.lower(models.Modifier.name) == name.lower())
        return self.session.exec(stmt).first()

    def list(self) -> List[models.Modifier]:
        return self.session.exec(select(models.Modifier).order_by(models.Modifier.id)).all()

    def save(self, modifier: models.Modifier) -> models.Modifier:
        self.session.add(modifier)
        self.session.commit()
        self.session.refresh(modifier)
        return modifier

    def delete(self, modifier: models.Modifier) -> None:
        self.session.delete(modifier)
        self.session.commit()

    def is_referenced(self, modifier_id: int) -> bool:
        """True while any plan item or execution lists the modifier."""
        in_plans = select(models.WorkoutPlanItemModifier.item_id).where(
            models.WorkoutPlanItemModifier.modifier_id == modifier_id
        )
        if self.session.exec(in_plans).first() is not None:
            return True
        in_sessions = select(models.ExecutionModifier.execution_id).where(
            models.ExecutionModifier.modifier_id == modifier_id
        )
        return self.session.exec(in_sessions).first() is not None


class WorkoutPlanRepository:
    """Persist workout plans together with their ordered items."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, plan: models.WorkoutPlan) -> models.WorkoutPlan:
        """Store a plan; items attached to `plan.items` are saved with it."""
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def get(self, plan_id: int) -> Optional[models.WorkoutPlan]:
        return self.session.get(models.WorkoutPlan, plan_id)

    def list(self, instructor_id: Optional[int] = None, student_id: Optional[int] = None) -> List[models.WorkoutPlan]:
        stmt = select(models.WorkoutPlan)
        if instructor_id is not None:
            stmt = stmt.where(models.WorkoutPlan.instructor_id == instructor_id)
        if student_id is not None:
            stmt = stmt.where(models.WorkoutPlan.student_id == student_id)
        return self.session.exec(stmt.order_by(models.WorkoutPlan.id)).all()

    def save(self, plan: models.WorkoutPlan) -> models.WorkoutPlan:
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def delete(self, plan: models.WorkoutPlan) -> None:
        self.session.delete(plan)
        self.session.commit()

    def exists_for_user(self, user_id: int) -> bool:
        """True if the user is the student or the instructor of any plan."""
        stmt = select(models.WorkoutPlan.id).where(
            or_(models.WorkoutPlan.student_id == user_id, models.WorkoutPlan.instructor_id == user_id)
        )
        return self.session.exec(stmt).first() is not None


class TrainingSessionRepository:
    """Persist training sessions together with their executions."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, training: models.TrainingSession) -> models.TrainingSession:
        self.session.add(training)
        self.session.commit()
        self.session.refresh(training)
        return training

    def get(self, session_id: int) -> Optional[models.TrainingSession]:
        return self.session.get(models.TrainingSession, session_id)

    def list(
        self,
        student_id: Optional[int] = None,
        workout_plan_id: Optional[int] = None,
        session_date: Optional[date] = None,
        student_ids: Optional[List[int]] = None,
    ) -> List[models.TrainingSession]:
        """List sessions; `student_ids` restricts to a set of students."""
        stmt = select(models.TrainingSession)
        if student_id is not None:
            stmt = stmt.where(models.TrainingSession.student_id == student_id)
        if workout_plan_id is not None:
            stmt = stmt.where(models.TrainingSession.workout_plan_id == workout_plan_id)
        if session_date is not None:
            stmt = stmt.where(models.TrainingSession.session_date == session_date)
        if student_ids is not None:
            if not student_ids:
                return []
            stmt = stmt.where(models.TrainingSession.student_id.in_(student_ids))
        return self.session.exec(stmt.order_by(models.TrainingSession.id)).all()

    def save(self, training: models.TrainingSession) -> models.TrainingSession:
        self.session.add(training)
        self.session.commit()
        self.session.refresh(training)
        return training

    def delete(self, training: models.TrainingSession) -> None:
        self.session.delete(training)
        self.session.commit()

    def exists_for_student(self, student_id: int) -> bool:
        stmt = select(models.TrainingSession.id).where(models.TrainingSession.student_id == student_id)
        return self.session.exec(stmt).first() is not None

    def exists_for_plan(self, plan_id: int) -> bool:
        stmt = select(models.TrainingSession.id).where(models.TrainingSession.workout_plan_id == plan_id)
        return self.session.exec(stmt).first() is not None
