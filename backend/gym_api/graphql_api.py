"""GraphQL schema mounted at `/graphql`.

Resolvers are thin wrappers around the same services the REST controllers
use, so every permission and integrity rule is shared. Inputs are turned
into the pydantic write schemas before reaching a service; unset input
fields stay unset so partial updates behave like the REST `PUT` routes.

Every operation except `login` expects an `Authorization: Bearer <token>`
header. Service errors surface in the response's `errors` array.
"""

from datetime import date, datetime
from typing import Annotated, List, Optional, Union

import pydantic
import strawberry
from fastapi import Depends, Request
from sqlmodel import Session
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from . import models, repositories, schemas, services
from .auth import user_from_token
from .database import get_session
from .errors import ServiceError

Role = strawberry.enum(models.Role, name="Role")
UserStatus = strawberry.enum(models.UserStatus, name="UserStatus")


# --- context helpers ------------------------------------------------------

def get_context(request: Request, session: Session = Depends(get_session)):
    return {"request": request, "session": session}


def _session(info: Info) -> Session:
    return info.context["session"]


def _actor(info: Info) -> models.User:
    header = info.context["request"].headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        token = None
    return user_from_token(_session(info), token or None)


def _plain(value):
    """Convert strawberry input objects into dicts, dropping unset fields."""
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "__strawberry_definition__"):
        return {k: _plain(v) for k, v in vars(value).items() if v is not strawberry.UNSET}
    return value


def _validate(schema_cls, value):
    try:
        return schema_cls.model_validate(_plain(value))
    except pydantic.ValidationError as exc:
        details = [
            "%s: %s" % (".".join(str(p) for p in err["loc"]), err["msg"]) if err["loc"] else err["msg"]
            for err in exc.errors()
        ]
        raise ServiceError("invalid input: " + "; ".join(details), details=details)


# --- output types ---------------------------------------------------------

@strawberry.type
class StudentProfile:
    height: Optional[float]
    weight: Optional[float]
    date_of_birth: Optional[date]
    instructor_id: Optional[int]

    @strawberry.field
    def instructor(self, info: Info) -> Optional["User"]:
        """The instructor assigned to this student."""
        if self.instructor_id is None:
            return None
        session = _session(info)
        found = repositories.UserRepository(session).get(self.instructor_id)
        return _user(services.Presenter(session).user(found, with_profile=False))


@strawberry.type
class InstructorProfile:
    cref: str
    specialization: Optional[str]
    bio: Optional[str]


Profile = Annotated[Union[StudentProfile, InstructorProfile], strawberry.union("Profile")]


@strawberry.type
class User:
    id: int
    document: str
    full_name: str
    email: str
    role: Role
    status: UserStatus
    created_at: datetime
    updated_at: datetime
    profile: Optional[Profile]


@strawberry.type
class Exercise:
    id: int
    name: str
    description: Optional[str]
    general_observation: Optional[str]
    muscle_category: str
    video_link: Optional[str]
    created_at: datetime
    updated_at: datetime


@strawberry.type
class Modifier:
    id: int
    name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime


@strawberry.type
class WorkoutPlanItem:
    id: int
    exercise_id: int
    series_count: int
    repetitions_expected: str
    load_suggested: Optional[str]
    observations: Optional[str]
    order_index: int
    modifier_ids: List[int]
    exercise: Optional[Exercise]
    modifiers: List[Modifier]


@strawberry.type
class WorkoutPlan:
    id: int
    name: str
    description: Optional[str]
    instructor_id: int
    student_id: int
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime
    items: List[WorkoutPlanItem]
    instructor: Optional[User]
    student: Optional[User]


@strawberry.type
class WorkoutPlanSummary:
    id: int
    name: str
    instructor_id: int
    student_id: int
    start_date: date
    end_date: date


@strawberry.type
class Execution:
    id: int
    exercise_id: int
    series_completed: int
    repetitions_completed: str
    load_used: str
    observations: Optional[str]
    modifier_ids: List[int]
    created_at: datetime
    updated_at: datetime
    exercise: Optional[Exercise]
    modifiers: List[Modifier]


@strawberry.type
class TrainingSession:
    id: int
    student_id: int
    workout_plan_id: Optional[int]
    session_date: date
    observations: Optional[str]
    created_at: datetime
    updated_at: datetime
    executions: List[Execution]
    student: Optional[User]
    workout_plan: Optional[WorkoutPlanSummary]


@strawberry.type
class AuthPayload:
    token: str
    user: User


# --- read schema -> GraphQL type ------------------------------------------

def _user(read: Optional[schemas.UserRead]) -> Optional[User]:
    if read is None:
        return None
    profile = None
    if isinstance(read.profile, schemas.StudentProfileRead):
        profile = StudentProfile(**read.profile.model_dump())
    elif isinstance(read.profile, schemas.InstructorProfileRead):
        profile = InstructorProfile(**read.profile.model_dump())
    return User(**read.model_dump(exclude={"profile"}), profile=profile)


def _exercise(read: Optional[schemas.ExerciseRead]) -> Optional[Exercise]:
    return Exercise(**read.model_dump()) if read else None


def _modifier(read: schemas.ModifierRead) -> Modifier:
    return Modifier(**read.model_dump())


def _plan(read: schemas.WorkoutPlanRead) -> WorkoutPlan:
    items = [
        WorkoutPlanItem(
            **item.model_dump(exclude={"exercise", "modifiers"}),
            exercise=_exercise(item.exercise),
            modifiers=[_modifier(m) for m in item.modifiers],
        )
        for item in read.items
    ]
    return WorkoutPlan(
        **read.model_dump(exclude={"items", "instructor", "student"}),
        items=items,
        instructor=_user(read.instructor),
        student=_user(read.student),
    )


def _training(read: schemas.TrainingSessionRead) -> TrainingSession:
    executions = [
        Execution(
            **e.model_dump(exclude={"exercise", "modifiers"}),
            exercise=_exercise(e.exercise),
            modifiers=[_modifier(m) for m in e.modifiers],
        )
        for e in read.executions
    ]
    plan = WorkoutPlanSummary(**read.workout_plan.model_dump()) if read.workout_plan else None
    return TrainingSession(
        **read.model_dump(exclude={"executions", "student", "workout_plan"}),
        executions=executions,
        student=_user(read.student),
        workout_plan=plan,
    )


# --- inputs ---------------------------------------------------------------

@strawberry.input
class UserDataInput:
    document: Optional[str] = strawberry.UNSET
    full_name: Optional[str] = strawberry.UNSET
    email: Optional[str] = strawberry.UNSET
    password: Optional[str] = strawberry.UNSET
    status: Optional[UserStatus] = strawberry.UNSET


@strawberry.input
class ProfileDataInput:
    height: Optional[float] = strawberry.UNSET
    weight: Optional[float] = strawberry.UNSET
    date_of_birth: Optional[date] = strawberry.UNSET
    instructor_id: Optional[int] = strawberry.UNSET
    cref: Optional[str] = strawberry.UNSET
    specialization: Optional[str] = strawberry.UNSET
    bio: Optional[str] = strawberry.UNSET


@strawberry.input
class ExerciseInput:
    name: Optional[str] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    general_observation: Optional[str] = strawberry.UNSET
    muscle_category: Optional[str] = strawberry.UNSET
    video_link: Optional[str] = strawberry.UNSET


@strawberry.input
class ModifierInput:
    name: Optional[str] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET


@strawberry.input
class WorkoutPlanItemInput:
    exercise_id: int
    series_count: int
    repetitions_expected: str
    order_index: int
    load_suggested: Optional[str] = strawberry.UNSET
    observations: Optional[str] = strawberry.UNSET
    modifier_ids: Optional[List[int]] = strawberry.UNSET


@strawberry.input
class WorkoutPlanInput:
    name: Optional[str] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    student_id: Optional[int] = strawberry.UNSET
    instructor_id: Optional[int] = strawberry.UNSET
    start_date: Optional[date] = strawberry.UNSET
    end_date: Optional[date] = strawberry.UNSET
    items: Optional[List[WorkoutPlanItemInput]] = strawberry.UNSET


@strawberry.input
class ExecutionInput:
    exercise_id: int
    series_completed: int
    repetitions_completed: str
    load_used: str
    observations: Optional[str] = strawberry.UNSET
    modifier_ids: Optional[List[int]] = strawberry.UNSET


@strawberry.input
class TrainingSessionInput:
    student_id: Optional[int] = strawberry.UNSET
    workout_plan_id: Optional[int] = strawberry.UNSET
    session_date: Optional[date] = strawberry.UNSET
    observations: Optional[str] = strawberry.UNSET
    executions: Optional[List[ExecutionInput]] = strawberry.UNSET


# --- operations -----------------------------------------------------------

@strawberry.type
class Query:
    @strawberry.field
    def users(self, info: Info, role: Optional[Role] = None, status: Optional[UserStatus] = None) -> List[User]:
        session = _session(info)
        found = services.UserService(session).list(_actor(info), role=role, status=status)
        presenter = services.Presenter(session)
        return [_user(presenter.user(u)) for u in found]

    @strawberry.field
    def user(self, info: Info, id: int) -> User:
        session = _session(info)
        found = services.UserService(session).get(_actor(info), id)
        return _user(services.Presenter(session).user(found))

    @strawberry.field
    def exercises(self, info: Info, muscle_category: Optional[str] = None) -> List[Exercise]:
        session = _session(info)
        _actor(info)
        presenter = services.Presenter(session)
        return [_exercise(presenter.exercise(e)) for e in services.ExerciseService(session).list(muscle_category)]

    @strawberry.field
    def exercise(self, info: Info, id: int) -> Exercise:
        session = _session(info)
        _actor(info)
        return _exercise(services.Presenter(session).exercise(services.ExerciseService(session).get(id)))

    @strawberry.field
    def modifiers(self, info: Info) -> List[Modifier]:
        session = _session(info)
        _actor(info)
        presenter = services.Presenter(session)
        return [_modifier(presenter.modifier(m)) for m in services.ModifierService(session).list()]

    @strawberry.field
    def modifier(self, info: Info, id: int) -> Modifier:
        session = _session(info)
        _actor(info)
        return _modifier(services.Presenter(session).modifier(services.ModifierService(session).get(id)))

    @strawberry.field
    def workout_plans(
        self, info: Info, student_id: Optional[int] = None, instructor_id: Optional[int] = None
    ) -> List[WorkoutPlan]:
        session = _session(info)
        plans = services.WorkoutPlanService(session).list(
            _actor(info), instructor_id=instructor_id, student_id=student_id
        )
        presenter = services.Presenter(session)
        return [_plan(presenter.plan(p)) for p in plans]

    @strawberry.field
    def workout_plan(self, info: Info, id: int) -> WorkoutPlan:
        session = _session(info)
        plan = services.WorkoutPlanService(session).get(_actor(info), id)
        return _plan(services.Presenter(session).plan(plan))

    @strawberry.field
    def sessions(self, info: Info, student_id: Optional[int] = None, plan_id: Optional[int] = None) -> List[TrainingSession]:
        session = _session(info)
        found = services.TrainingSessionService(session).list(
            _actor(info), student_id=student_id, workout_plan_id=plan_id
        )
        presenter = services.Presenter(session)
        return [_training(presenter.session(t)) for t in found]

    @strawberry.field
    def session(self, info: Info, id: int) -> TrainingSession:
        session = _session(info)
        training = services.TrainingSessionService(session).get(_actor(info), id)
        return _training(services.Presenter(session).session(training))


@strawberry.type
class Mutation:
    @strawberry.mutation
    def login(self, info: Info, login: str, password: str) -> AuthPayload:
        session = _session(info)
        data = _validate(schemas.LoginIn, {"login": login, "password": password})
        auth = services.AuthService(session)
        token = auth.authenticate(data.login, data.password)
        found = auth.user_repo.get_by_login(data.login)
        return AuthPayload(token=token, user=_user(services.Presenter(session).user(found)))

    @strawberry.mutation
    def create_user(
        self,
        info: Info,
        role: Role,
        user_data: UserDataInput,
        profile_data: Optional[ProfileDataInput] = None,
    ) -> User:
        """Create a user of any role; profile fields must match the role."""
        session = _session(info)
        actor = _actor(info)
        user_service = services.UserService(session)
        user_fields = _plain(user_data)
        if "status" in user_fields:
            raise ServiceError("status cannot be set when creating a user")
        profile_fields = _plain(profile_data) if profile_data else {}
        if role == models.Role.STUDENT:
            created = user_service.create_student(
                actor, _validate(schemas.StudentCreateIn, {"user_data": user_fields, "profile_data": profile_fields})
            )
        elif role == models.Role.INSTRUCTOR:
            created = user_service.create_instructor(
                actor, _validate(schemas.InstructorCreateIn, {"user_data": user_fields, "profile_data": profile_fields})
            )
        else:
            if profile_fields:
                raise ServiceError("Admin users have no profile")
            created = user_service.create_admin(actor, _validate(schemas.UserDataIn, user_fields))
        return _user(services.Presenter(session).user(created))

    @strawberry.mutation
    def update_user(
        self,
        info: Info,
        id: int,
        user_data: Optional[UserDataInput] = None,
        profile_data: Optional[ProfileDataInput] = None,
    ) -> User:
        session = _session(info)
        actor = _actor(info)
        payload = {}
        if user_data is not None:
            payload["user_data"] = _plain(user_data)
        if profile_data is not None:
            payload["profile_data"] = _plain(profile_data)
        data = _validate(schemas.UserUpdateIn, payload)
        updated = services.UserService(session).update(actor, id, data)
        return _user(services.Presenter(session).user(updated))

    @strawberry.mutation
    def delete_user(self, info: Info, id: int) -> bool:
        services.UserService(_session(info)).delete(_actor(info), id)
        return True

    @strawberry.mutation
    def create_exercise(self, info: Info, input: ExerciseInput) -> Exercise:
        session = _session(info)
        actor = _actor(info)
        created = services.ExerciseService(session).create(actor, _validate(schemas.ExerciseIn, input))
        return _exercise(services.Presenter(session).exercise(created))

    @strawberry.mutation
    def update_exercise(self, info: Info, id: int, input: ExerciseInput) -> Exercise:
        session = _session(info)
        actor = _actor(info)
        updated = services.ExerciseService(session).update(actor, id, _validate(schemas.ExerciseUpdate, input))
        return _exercise(services.Presenter(session).exercise(updated))

    @strawberry.mutation
    def delete_exercise(self, info: Info, id: int) -> bool:
        services.ExerciseService(_session(info)).delete(_actor(info), id)
        return True

    @strawberry.mutation
    def create_modifier(self, info: Info, input: ModifierInput) -> Modifier:
        session = _session(info)
        actor = _actor(info)
        created = services.ModifierService(session).create(actor, _validate(schemas.ModifierIn, input))
        return _modifier(services.Presenter(session).modifier(created))

    @strawberry.mutation
    def update_modifier(self, info: Info, id: int, input: ModifierInput) -> Modifier:
        session = _session(info)
        actor = _actor(info)
        updated = services.ModifierService(session).update(actor, id, _validate(schemas.ModifierUpdate, input))
        return _modifier(services.Presenter(session).modifier(updated))

    @strawberry.mutation
    def delete_modifier(self, info: Info, id: int) -> bool:
        services.ModifierService(_session(info)).delete(_actor(info), id)
        return True

    @strawberry.mutation
    def create_workout_plan(self, info: Info, input: WorkoutPlanInput) -> WorkoutPlan:
        session = _session(info)
        actor = _actor(info)
        data = _validate(schemas.WorkoutPlanCreateIn, input)
        plan = services.WorkoutPlanService(session).create(actor, data)
        return _plan(services.Presenter(session).plan(plan))

    @strawberry.mutation
    def update_workout_plan(self, info: Info, id: int, input: WorkoutPlanInput) -> WorkoutPlan:
        session = _session(info)
        actor = _actor(info)
        data = _validate(schemas.WorkoutPlanUpdateIn, input)
        plan = services.WorkoutPlanService(session).update(actor, id, data)
        return _plan(services.Presenter(session).plan(plan))

    @strawberry.mutation
    def delete_workout_plan(self, info: Info, id: int) -> bool:
        services.WorkoutPlanService(_session(info)).delete(_actor(info), id)
        return True

    @strawberry.mutation
    def create_session(self, info: Info, input: TrainingSessionInput) -> TrainingSession:
        session = _session(info)
        actor = _actor(info)
        data = _validate(schemas.TrainingSessionCreateIn, input)
        training = services.TrainingSessionService(session).create(actor, data)
        return _training(services.Presenter(session).session(training))

    @strawberry.mutation
    def update_session(self, info: Info, id: int, input: TrainingSessionInput) -> TrainingSession:
        session = _session(info)
        actor = _actor(info)
        data = _validate(schemas.TrainingSessionUpdateIn, input)
        training = services.TrainingSessionService(session).update(actor, id, data)
        return _training(services.Presenter(session).session(training))

    @strawberry.mutation
    def delete_session(self, info: Info, id: int) -> bool:
        services.TrainingSessionService(_session(info)).delete(_actor(info), id)
        return True


schema = strawberry.Schema(query=Query, mutation=Mutation)
graphql_app = GraphQLRouter(schema, context_getter=get_context)
