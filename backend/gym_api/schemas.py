"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers, GraphQL resolvers and tests. Write schemas are also
what the services accept, so both API surfaces share one set of rules.
Update schemas are applied with `exclude_unset=True`: a field that is
sent as `null` is cleared, a field that is omitted is left alone.
"""

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import Role, UserStatus

DOCUMENT_PATTERN = r"^\d{3}\.\d{3}\.\d{3}-\d{2}$"
CREF_PATTERN = r"^\d{6}-\w/\w{2}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
URL_PATTERN = r"^(https?://\S+)?$"


def _require_any_field(model: BaseModel) -> None:
    if not model.model_fields_set:
        raise ValueError("at least one field must be provided")


# --- auth -----------------------------------------------------------------

class LoginIn(BaseModel):
    """Credentials for `/auth/login`; `login` is an email or a document."""
    login: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


# --- users ----------------------------------------------------------------

class UserDataIn(BaseModel):
    document: str = Field(pattern=DOCUMENT_PATTERN, examples=["123.456.789-00"])
    full_name: str = Field(min_length=3, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(min_length=8)


class StudentProfileIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    height: Optional[float] = Field(default=None, ge=50, le=250)
    weight: Optional[float] = Field(default=None, ge=10, le=500)
    date_of_birth: Optional[date] = None
    instructor_id: Optional[int] = Field(default=None, gt=0)


class InstructorProfileIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cref: str = Field(pattern=CREF_PATTERN, examples=["123456-G/SP"])
    specialization: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=500)


class StudentCreateIn(BaseModel):
    user_data: UserDataIn
    profile_data: StudentProfileIn = Field(default_factory=StudentProfileIn)


class InstructorCreateIn(BaseModel):
    user_data: UserDataIn
    profile_data: InstructorProfileIn


class UserDataUpdate(BaseModel):
    document: Optional[str] = Field(default=None, pattern=DOCUMENT_PATTERN)
    full_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=254)
    password: Optional[str] = Field(default=None, min_length=8)
    status: Optional[UserStatus] = None


class ProfileDataUpdate(BaseModel):
    """Profile changes; only the fields of the target's profile kind apply."""
    height: Optional[float] = Field(default=None, ge=50, le=250)
    weight: Optional[float] = Field(default=None, ge=10, le=500)
    date_of_birth: Optional[date] = None
    instructor_id: Optional[int] = Field(default=None, gt=0)
    cref: Optional[str] = Field(default=None, pattern=CREF_PATTERN)
    specialization: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=500)


STUDENT_PROFILE_FIELDS = frozenset(StudentProfileIn.model_fields)
INSTRUCTOR_PROFILE_FIELDS = frozenset(InstructorProfileIn.model_fields)


class UserUpdateIn(BaseModel):
    user_data: Optional[UserDataUpdate] = None
    profile_data: Optional[ProfileDataUpdate] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if self.user_data is None and self.profile_data is None:
            raise ValueError("request body must contain user_data or profile_data")
        return self


class StudentProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    height: Optional[float] = None
    weight: Optional[float] = None
    date_of_birth: Optional[date] = None
    instructor_id: Optional[int] = None


class InstructorProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cref: str
    specialization: Optional[str] = None
    bio: Optional[str] = None


class UserRead(BaseModel):
    """A user as returned by the API (the password hash is never included)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    document: str
    full_name: str
    email: str
    role: Role
    status: UserStatus
    created_at: datetime
    updated_at: datetime
    profile: Optional[Union[StudentProfileRead, InstructorProfileRead]] = None


# --- exercises / modifiers ------------------------------------------------

class ExerciseIn(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    general_observation: Optional[str] = Field(default=None, max_length=500)
    muscle_category: str = Field(min_length=1)
    video_link: Optional[str] = Field(default=None, pattern=URL_PATTERN)


class ExerciseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    general_observation: Optional[str] = Field(default=None, max_length=500)
    muscle_category: Optional[str] = Field(default=None, min_length=1)
    video_link: Optional[str] = Field(default=None, pattern=URL_PATTERN)

    @model_validator(mode="after")
    def _not_empty(self):
        _require_any_field(self)
        return self


class ExerciseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    general_observation: Optional[str] = None
    muscle_category: str
    video_link: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ModifierIn(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class ModifierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _not_empty(self):
        _require_any_field(self)
        return self


class ModifierRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# --- workout plans --------------------------------------------------------

class PlanItemIn(BaseModel):
    exercise_id: int = Field(gt=0)
    series_count: int = Field(ge=1)
    repetitions_expected: str = Field(min_length=1)
    load_suggested: Optional[str] = None
    observations: Optional[str] = None
    order_index: int = Field(ge=1)
    modifier_ids: List[int] = Field(default_factory=list)


class WorkoutPlanCreateIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    student_id: int = Field(gt=0)
    instructor_id: Optional[int] = Field(default=None, gt=0)
    start_date: date
    end_date: date
    items: List[PlanItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WorkoutPlanUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    student_id: Optional[int] = Field(default=None, gt=0)
    instructor_id: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    items: Optional[List[PlanItemIn]] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _check(self):
        _require_any_field(self)
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PlanItemRead(BaseModel):
    id: int
    exercise_id: int
    series_count: int
    repetitions_expected: str
    load_suggested: Optional[str] = None
    observations: Optional[str] = None
    order_index: int
    modifier_ids: List[int]
    exercise: Optional[ExerciseRead] = None
    modifiers: List[ModifierRead] = Field(default_factory=list)


class WorkoutPlanRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    instructor_id: int
    student_id: int
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime
    items: List[PlanItemRead]
    instructor: Optional[UserRead] = None
    student: Optional[UserRead] = None


class PlanSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    instructor_id: int
    student_id: int
    start_date: date
    end_date: date


# --- training sessions ----------------------------------------------------

class ExecutionIn(BaseModel):
    exercise_id: int = Field(gt=0)
    series_completed: int = Field(ge=1)
    repetitions_completed: str = Field(min_length=1)
    load_used: str = Field(min_length=1)
    observations: Optional[str] = None
    modifier_ids: List[int] = Field(default_factory=list)


class TrainingSessionCreateIn(BaseModel):
    student_id: int = Field(gt=0)
    workout_plan_id: Optional[int] = Field(default=None, gt=0)
    session_date: date
    observations: Optional[str] = None
    executions: List[ExecutionIn] = Field(min_length=1)


class TrainingSessionUpdateIn(BaseModel):
    student_id: Optional[int] = Field(default=None, gt=0)
    workout_plan_id: Optional[int] = Field(default=None, gt=0)
    session_date: Optional[date] = None
    observations: Optional[str] = None
    executions: Optional[List[ExecutionIn]] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _not_empty(self):
        _require_any_field(self)
        return self


class ExecutionRead(BaseModel):
    id: int
    exercise_id: int
    series_completed: int
    repetitions_completed: str
    load_used: str
    observations: Optional[str] = None
    modifier_ids: List[int]
    created_at: datetime
    updated_at: datetime
    exercise: Optional[ExerciseRead] = None
    modifiers: List[ModifierRead] = Field(default_factory=list)


class TrainingSessionRead(BaseModel):
    id: int
    student_id: int
    workout_plan_id: Optional[int] = None
    session_date: date
    observations: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    executions: List[ExecutionRead]
    student: Optional[UserRead] = None
    workout_plan: Optional[PlanSummaryRead] = None
