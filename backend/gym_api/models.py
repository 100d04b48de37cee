"""SQLModel data models.

This module defines the application's tables using SQLModel. Each class
maps to a table; plans and sessions own their nested items/executions
through relationships so that replacing or deleting the parent also
replaces or deletes the children. Links between rows and modifiers keep
the order in which modifier ids were supplied.

Foreign keys are declared for documentation and joins only. SQLite does
not enforce them here, so every referential rule lives in `services`.

Tables with a surrogate `id` use `sqlite_autoincrement` so ids of deleted
rows are never handed out again; a token issued for a deleted user can
not resolve to whoever is created next.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "Admin"
    INSTRUCTOR = "Instructor"
    STUDENT = "Student"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class User(SQLModel, table=True):
    """A person with access to the gym backend.

    Fields:
    - `document`: national id number, unique (`000.000.000-00`)
    - `email`: unique login alternative to `document`
    - `role`: governs what the user can see and change
    - `password_hash`: hashed password string (never returned by the API)
    """
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    document: str = Field(index=True, unique=True)
    full_name: str
    email: str = Field(index=True, unique=True)
    role: Role = Field(index=True)
    password_hash: str
    status: UserStatus = Field(default=UserStatus.ACTIVE)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class StudentProfile(SQLModel, table=True):
    """Student-only attributes, one row per Student user."""
    user_id: int = Field(foreign_key='user.id', primary_key=True)
    height: Optional[float] = None
    weight: Optional[float] = None
    date_of_birth: Optional[date] = None
    instructor_id: Optional[int] = Field(default=None, foreign_key='user.id', index=True)


class InstructorProfile(SQLModel, table=True):
    """Instructor-only attributes; `cref` is the unique council registration."""
    user_id: int = Field(foreign_key='user.id', primary_key=True)
    cref: str = Field(index=True, unique=True)
    specialization: Optional[str] = None
    bio: Optional[str] = None


class Exercise(SQLModel, table=True):
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    general_observation: Optional[str] = None
    muscle_category: str
    video_link: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Modifier(SQLModel, table=True):
    """A set type applied to a plan item or an execution (e.g. Drop Set)."""
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WorkoutPlan(SQLModel, table=True):
    """A plan written by an instructor for one student."""
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    instructor_id: int = Field(foreign_key='user.id', index=True)
    student_id: int = Field(foreign_key='user.id', index=True)
    start_date: date
    end_date: date
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    items: List['WorkoutPlanItem'] = Relationship(
        back_populates='plan',
        sa_relationship_kwargs={'order_by': 'WorkoutPlanItem.order_index', 'cascade': 'all, delete-orphan'},
    )


class WorkoutPlanItem(SQLModel, table=True):
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    plan_id: int = Field(foreign_key='workoutplan.id', index=True)
    exercise_id: int = Field(foreign_key='exercise.id', index=True)
    series_count: int
    repetitions_expected: str
    load_suggested: Optional[str] = None
    observations: Optional[str] = None
    order_index: int
    plan: Optional[WorkoutPlan] = Relationship(back_populates='items')
    modifier_links: List['WorkoutPlanItemModifier'] = Relationship(
        back_populates='item',
        sa_relationship_kwargs={'order_by': 'WorkoutPlanItemModifier.position', 'cascade': 'all, delete-orphan'},
    )

    @property
    def modifier_ids(self) -> List[int]:
        return [link.modifier_id for link in self.modifier_links]


class WorkoutPlanItemModifier(SQLModel, table=True):
    item_id: int = Field(foreign_key='workoutplanitem.id', primary_key=True)
    modifier_id: int = Field(foreign_key='modifier.id', primary_key=True, index=True)
    position: int = 0
    item: Optional[WorkoutPlanItem] = Relationship(back_populates='modifier_links')


class TrainingSession(SQLModel, table=True):
    """A workout actually performed by a student on `session_date`."""
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key='user.id', index=True)
    workout_plan_id: Optional[int] = Field(default=None, foreign_key='workoutplan.id', index=True)
    session_date: date = Field(index=True)
    observations: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    executions: List['Execution'] = Relationship(
        back_populates='session',
        sa_relationship_kwargs={'order_by': 'Execution.id', 'cascade': 'all, delete-orphan'},
    )


class Execution(SQLModel, table=True):
    """One exercise as performed within a `TrainingSession`."""
    __table_args__ = {'sqlite_autoincrement': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key='trainingsession.id', index=True)
    exercise_id: int = Field(foreign_key='exercise.id', index=True)
    series_completed: int
    repetitions_completed: str
    load_used: str
    observations: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    session: Optional[TrainingSession] = Relationship(back_populates='executions')
    modifier_links: List['ExecutionModifier'] = Relationship(
        back_populates='execution',
        sa_relationship_kwargs={'order_by': 'ExecutionModifier.position', 'cascade': 'all, delete-orphan'},
    )

    @property
    def modifier_ids(self) -> List[int]:
        return [link.modifier_id for link in self.modifier_links]


class ExecutionModifier(SQLModel, table=True):
    execution_id: int = Field(foreign_key='execution.id', primary_key=True)
    modifier_id: int = Field(foreign_key='modifier.id', primary_key=True, index=True)
    position: int = 0
    execution: Optional[Execution] = Relationship(back_populates='modifier_links')
