"""Business logic services used by HTTP controllers and GraphQL resolvers.

This module holds small service classes that coordinate repositories and
enforce the rules of the gym backend: who may see or change which record
(`AccessPolicy`), uniqueness of documents, emails, crefs and catalog
names, and the referential checks that run before writes and deletes.
Services raise `errors.ServiceError` subclasses; they never build HTTP
responses. `Presenter` turns stored rows into the read schemas both API
surfaces return.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories, schemas
from .config import settings
from .errors import AuthenticationFailed, ConflictError, NotFoundError, PermissionDeniedError, ServiceError
from .models import Role, UserStatus

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
STAFF_ROLES = (Role.ADMIN, Role.INSTRUCTOR)

logger = logging.getLogger("gym_api.services")


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def _deny(actor: models.User, action: str, message: str = "you do not have permission to perform this action"):
    logger.warning("permission denied user_id=%s role=%s action=%s", actor.id, actor.role.value, action)
    return PermissionDeniedError(message)


def _require_role(actor: models.User, roles: Iterable[Role], action: str) -> None:
    if actor.role not in roles:
        raise _deny(actor, action)


def _reject_nulls(changes: dict, fields: Iterable[str]) -> None:
    """Fields that may be omitted from an update but never set to null."""
    nulled = [f for f in fields if f in changes and changes[f] is None]
    if nulled:
        raise ServiceError("fields cannot be null: " + ", ".join(nulled), details=nulled)


def _dedupe(ids: List[int]) -> List[int]:
    seen = set()
    out = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


class AccessPolicy:
    """Answers the ownership questions shared by every service.

    "Instructor of student S" means S's StudentProfile names the instructor
    in `instructor_id`.
    """
    def __init__(self, session: Session):
        self.profile_repo = repositories.ProfileRepository(session)

    def instructs(self, actor: models.User, student_id: int) -> bool:
        if actor.role != Role.INSTRUCTOR:
            return False
        profile = self.profile_repo.get_student_profile(student_id)
        return profile is not None and profile.instructor_id == actor.id

    def can_access_user(self, actor: models.User, target: models.User) -> bool:
        if actor.role == Role.ADMIN or actor.id == target.id:
            return True
        return target.role == Role.STUDENT and self.instructs(actor, target.id)

    def can_access_student_records(self, actor: models.User, student_id: int) -> bool:
        """Admin, the student themself, or the student's instructor."""
        if actor.role == Role.ADMIN or actor.id == student_id:
            return True
        return self.instructs(actor, student_id)


class AuthService:
    """Authentication related operations."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def authenticate(self, login: str, password: str) -> str:
        """Verify credentials and return a signed JWT token.

        `login` is matched against the email first and then the document.
        Raises `AuthenticationFailed` for unknown users, wrong passwords and
        inactive accounts alike.
        """
        user = self.user_repo.get_by_login(login)
        if not user or not PWD_CTX.verify(password, user.password_hash):
            logger.info("login failed login=%s", login)
            raise AuthenticationFailed("invalid credentials")
        if user.status != UserStatus.ACTIVE:
            logger.info("login refused for inactive user_id=%s", user.id)
            raise AuthenticationFailed("user account is inactive")
        return self.issue_token(user)

    @staticmethod
    def issue_token(user: models.User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
        payload = {"user_id": user.id, "role": user.role.value, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class UserService:
    """Users and their role-specific profiles."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)
        self.plan_repo = repositories.WorkoutPlanRepository(session)
        self.training_repo = repositories.TrainingSessionRepository(session)
        self.policy = AccessPolicy(session)

    # -- lookups ---------------------------------------------------------

    def _get_or_404(self, user_id: int) -> models.User:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("user not found")
        return user

    def _require_instructor(self, instructor_id: int) -> models.User:
        instructor = self.user_repo.get(instructor_id)
        if not instructor or instructor.role != Role.INSTRUCTOR:
            raise ServiceError("instructor_id must reference a user with role Instructor")
        return instructor

    def _check_unique(self, document: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        if document is not None and self.user_repo.document_taken(document, exclude_id):
            raise ConflictError("document already registered")
        if email is not None and self.user_repo.email_taken(email, exclude_id):
            raise ConflictError("email already registered")

    def profile_of(self, user: models.User):
        """The StudentProfile or InstructorProfile of `user` (None for Admins)."""
        if user.role == Role.STUDENT:
            return self.profile_repo.get_student_profile(user.id)
        if user.role == Role.INSTRUCTOR:
            return self.profile_repo.get_instructor_profile(user.id)
        return None

    # -- create ----------------------------------------------------------

    def _new_user(self, data: schemas.UserDataIn, role: Role) -> models.User:
        self._check_unique(data.document, data.email)
        user = models.User(
            document=data.document,
            full_name=data.full_name,
            email=data.email,
            role=role,
            password_hash=hash_password(data.password),
        )
        return self.user_repo.create(user)

    def create_student(self, actor: models.User, data: schemas.StudentCreateIn) -> models.User:
        """Create a Student; an Instructor caller becomes the default instructor."""
        _require_role(actor, STAFF_ROLES, "create_student")
        instructor_id = data.profile_data.instructor_id
        if actor.role == Role.INSTRUCTOR:
            if instructor_id is None:
                instructor_id = actor.id
            elif instructor_id != actor.id:
                raise _deny(actor, "create_student", "instructors can only register students for themselves")
        if instructor_id is not None:
            self._require_instructor(instructor_id)
        user = self._new_user(data.user_data, Role.STUDENT)
        profile = models.StudentProfile(
            user_id=user.id,
            height=data.profile_data.height,
            weight=data.profile_data.weight,
            date_of_birth=data.profile_data.date_of_birth,
            instructor_id=instructor_id,
        )
        self.profile_repo.save(profile)
        logger.info("student created user_id=%s by=%s", user.id, actor.id)
        return user

    def create_instructor(self, actor: models.User, data: schemas.InstructorCreateIn) -> models.User:
        _require_role(actor, (Role.ADMIN,), "create_instructor")
        if self.profile_repo.cref_taken(data.profile_data.cref):
            raise ConflictError("cref already registered")
        user = self._new_user(data.user_data, Role.INSTRUCTOR)
        profile = models.InstructorProfile(user_id=user.id, **data.profile_data.model_dump())
        self.profile_repo.save(profile)
        logger.info("instructor created user_id=%s by=%s", user.id, actor.id)
        return user

    def create_admin(self, actor: models.User, data: schemas.UserDataIn) -> models.User:
        _require_role(actor, (Role.ADMIN,), "create_admin")
        user = self._new_user(data, Role.ADMIN)
        logger.info("admin created user_id=%s by=%s", user.id, actor.id)
        return user

    # -- read ------------------------------------------------------------

    def list(self, actor: models.User, role: Optional[Role] = None, status: Optional[UserStatus] = None) -> List[models.User]:
        """Users visible to `actor`, optionally filtered by role and status."""
        users = self.user_repo.list(role=role, status=status)
        if actor.role == Role.ADMIN:
            return users
        visible = {actor.id}
        if actor.role == Role.INSTRUCTOR:
            visible.update(self.profile_repo.student_ids_of(actor.id))
        return [u for u in users if u.id in visible]

    def get(self, actor: models.User, user_id: int) -> models.User:
        user = self._get_or_404(user_id)
        if not self.policy.can_access_user(actor, user):
            raise _deny(actor, "get_user")
        return user

    # -- update ----------------------------------------------------------

    def update(self, actor: models.User, user_id: int, data: schemas.UserUpdateIn) -> models.User:
        """Apply a partial update to a user and, optionally, their profile.

        Role cannot be changed. Students cannot change their own status and
        only an Admin may move a student to a different instructor.
        """
        user = self.get(actor, user_id)
        changes = data.user_data.model_dump(exclude_unset=True) if data.user_data else {}
        profile_changes = data.profile_data.model_dump(exclude_unset=True) if data.profile_data else {}
        _reject_nulls(changes, ("document", "full_name", "email", "password", "status"))

        if "status" in changes and actor.role == Role.STUDENT:
            raise _deny(actor, "update_user_status", "students cannot change their status")
        self._check_unique(changes.get("document"), changes.get("email"), exclude_id=user.id)

        profile = self._apply_profile_changes(actor, user, profile_changes)

        password = changes.pop("password", None)
        if password is not None:
            user.password_hash = hash_password(password)
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = models.utcnow()
        if profile is not None:
            self.session.add(profile)
        user = self.user_repo.save(user)
        logger.info("user updated user_id=%s by=%s fields=%s", user.id, actor.id,
                    sorted(list(changes) + list(profile_changes) + (["password"] if password else [])))
        return user

    def _apply_profile_changes(self, actor: models.User, user: models.User, changes: dict):
        if not changes:
            return None
        if user.role == Role.STUDENT:
            allowed = schemas.STUDENT_PROFILE_FIELDS
        elif user.role == Role.INSTRUCTOR:
            allowed = schemas.INSTRUCTOR_PROFILE_FIELDS
        else:
            raise ServiceError("Admin users have no profile")
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ServiceError(
                "fields not applicable to a %s profile: %s" % (user.role.value, ", ".join(unknown)),
                details=unknown,
            )
        profile = self.profile_of(user)
        if profile is None:
            profile = models.StudentProfile(user_id=user.id) if user.role == Role.STUDENT else None
        if profile is None:
            raise NotFoundError("instructor profile not found")

        if "instructor_id" in changes:
            new_instructor = changes["instructor_id"]
            if new_instructor != profile.instructor_id and actor.role != Role.ADMIN:
                raise _deny(actor, "reassign_instructor", "only an Admin can change a student's instructor")
            if new_instructor is not None:
                self._require_instructor(new_instructor)
        if "cref" in changes:
            _reject_nulls(changes, ("cref",))
            if self.profile_repo.cref_taken(changes["cref"], exclude_user_id=user.id):
                raise ConflictError("cref already registered")
        for field, value in changes.items():
            setattr(profile, field, value)
        return profile

    # -- delete ----------------------------------------------------------

    def delete(self, actor: models.User, user_id: int) -> None:
        """Delete a user and their profile unless other records depend on them."""
        actor_id = actor.id
        user = self.get(actor, user_id)
        if user.role == Role.ADMIN and actor.role != Role.ADMIN:
            raise _deny(actor, "delete_admin")
        if self.plan_repo.exists_for_user(user.id):
            raise ConflictError("user is linked to workout plans and cannot be deleted")
        if self.training_repo.exists_for_student(user.id):
            raise ConflictError("user has training sessions and cannot be deleted")
        if self.profile_repo.has_students(user.id):
            raise ConflictError("instructor still has assigned students and cannot be deleted")
        self.profile_repo.delete_for_user(user.id)
        self.user_repo.delete(user)
        logger.info("user deleted user_id=%s by=%s", user_id, actor_id)


class ExerciseService:
    """Exercise catalog; readable by everyone, managed by staff."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ExerciseRepository(session)

    def list(self, muscle_category: Optional[str] = None) -> List[models.Exercise]:
        return self.repo.list(muscle_category=muscle_category)

    def get(self, exercise_id: int) -> models.Exercise:
        exercise = self.repo.get(exercise_id)
        if not exercise:
            raise NotFoundError("exercise not found")
        return exercise

    def _check_name(self, name: str, exclude_id: Optional[int] = None):
        existing = self.repo.get_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("an exercise named '%s' already exists" % name)

    def create(self, actor: models.User, data: schemas.ExerciseIn) -> models.Exercise:
        _require_role(actor, STAFF_ROLES, "create_exercise")
        self._check_name(data.name)
        exercise = self.repo.create(models.Exercise(**data.model_dump()))
        logger.info("exercise created id=%s by=%s", exercise.id, actor.id)
        return exercise

    def update(self, actor: models.User, exercise_id: int, data: schemas.ExerciseUpdate) -> models.Exercise:
        _require_role(actor, STAFF_ROLES, "update_exercise")
        exercise = self.get(exercise_id)
        changes = data.model_dump(exclude_unset=True)
        _reject_nulls(changes, ("name", "muscle_category"))
        if "name" in changes:
            self._check_name(changes["name"], exclude_id=exercise.id)
        for field, value in changes.items():
            setattr(exercise, field, value)
        exercise.updated_at = models.utcnow()
        exercise = self.repo.save(exercise)
        logger.info("exercise updated id=%s by=%s", exercise.id, actor.id)
        return exercise

    def delete(self, actor: models.User, exercise_id: int) -> None:
        _require_role(actor, STAFF_ROLES, "delete_exercise")
        exercise = self.get(exercise_id)
        if self.repo.is_referenced(exercise.id):
            raise ConflictError("exercise is used by workout plans or sessions and cannot be deleted")
        self.repo.delete(exercise)
        logger.info("exercise deleted id=%s by=%s", exercise_id, actor.id)


class ModifierService:
    """Modifier (set type) catalog; readable by everyone, managed by staff."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ModifierRepository(session)

    def list(self) -> List[models.Modifier]:
        return self.repo.list()

    def get(self, modifier_id: int) -> models.Modifier:
        modifier = self.repo.get(modifier_id)
        if not modifier:
            raise NotFoundError("modifier not found")
        return modifier

    def _check_name(self, name: str, exclude_id: Optional[int] = None):
        existing = self.repo.get_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("a modifier named '%s' already exists" % name)

    def create(self, actor: models.User, data: schemas.ModifierIn) -> models.Modifier:
        _require_role(actor, STAFF_ROLES, "create_modifier")
        self._check_name(data.name)
        modifier = self.repo.create(models.Modifier(**data.model_dump()))
        logger.info("modifier created id=%s by=%s", modifier.id, actor.id)
        return modifier

    def update(self, actor: models.User, modifier_id: int, data: schemas.ModifierUpdate) -> models.Modifier:
        _require_role(actor, STAFF_ROLES, "update_modifier")
        modifier = self.get(modifier_id)
        changes = data.model_dump(exclude_unset=True)
        _reject_nulls(changes, ("name",))
        if "name" in changes:
            self._check_name(changes["name"], exclude_id=modifier.id)
        for field, value in changes.items():
            setattr(modifier, field, value)
        modifier.updated_at = models.utcnow()
        modifier = self.repo.save(modifier)
        logger.info("modifier updated id=%s by=%s", modifier.id, actor.id)
        return modifier

    def delete(self, actor: models.User, modifier_id: int) -> None:
        _require_role(actor, STAFF_ROLES, "delete_modifier")
        modifier = self.get(modifier_id)
        if self.repo.is_referenced(modifier.id):
            raise ConflictError("modifier is used by workout plans or sessions and cannot be deleted")
        self.repo.delete(modifier)
        logger.info("modifier deleted id=%s by=%s", modifier_id, actor.id)


class _CatalogChecks:
    """Existence checks for the exercises and modifiers a plan or session names."""
    def __init__(self, session: Session):
        self.exercise_repo = repositories.ExerciseRepository(session)
        self.modifier_repo = repositories.ModifierRepository(session)

    def require_exercise(self, exercise_id: int) -> None:
        if self.exercise_repo.get(exercise_id) is None:
            raise ServiceError("exercise %s does not exist" % exercise_id, details={"exercise_id": exercise_id})

    def require_modifiers(self, modifier_ids: List[int]) -> List[int]:
        """Return `modifier_ids` without duplicates, failing on unknown ids."""
        ids = _dedupe(modifier_ids)
        found = {m.id for m in self.modifier_repo.get_many(ids)}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ServiceError(
                "modifiers do not exist: " + ", ".join(str(i) for i in missing),
                details={"modifier_ids": missing},
            )
        return ids


class WorkoutPlanService:
    """Workout plans written by instructors for their students."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.WorkoutPlanRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.training_repo = repositories.TrainingSessionRepository(session)
        self.catalog = _CatalogChecks(session)

    def _get_or_404(self, plan_id: int) -> models.WorkoutPlan:
        plan = self.repo.get(plan_id)
        if not plan:
            raise NotFoundError("workout plan not found")
        return plan

    def _require_user(self, user_id: int, role: Role, field: str) -> None:
        user = self.user_repo.get(user_id)
        if not user or user.role != role:
            raise ServiceError("%s must reference a user with role %s" % (field, role.value))

    def _build_items(self, items: List[schemas.PlanItemIn]) -> List[models.WorkoutPlanItem]:
        built = []
        for item in items:
            self.catalog.require_exercise(item.exercise_id)
            modifier_ids = self.catalog.require_modifiers(item.modifier_ids)
            row = models.WorkoutPlanItem(
                exercise_id=item.exercise_id,
                series_count=item.series_count,
                repetitions_expected=item.repetitions_expected,
                load_suggested=item.load_suggested,
                observations=item.observations,
                order_index=item.order_index,
            )
            row.modifier_links = [
                models.WorkoutPlanItemModifier(modifier_id=mid, position=pos)
                for pos, mid in enumerate(modifier_ids)
            ]
            built.append(row)
        return built

    def _is_owner(self, actor: models.User, plan: models.WorkoutPlan) -> bool:
        return actor.role == Role.INSTRUCTOR and plan.instructor_id == actor.id

    def create(self, actor: models.User, data: schemas.WorkoutPlanCreateIn) -> models.WorkoutPlan:
        """Create a plan. Admins must name the instructor; instructors own what they create."""
        _require_role(actor, STAFF_ROLES, "create_workout_plan")
        if actor.role == Role.ADMIN:
            if data.instructor_id is None:
                raise ServiceError("instructor_id is required when an Admin creates a workout plan")
            instructor_id = data.instructor_id
        else:
            if data.instructor_id is not None and data.instructor_id != actor.id:
                raise _deny(actor, "create_workout_plan", "instructors can only create plans they own")
            instructor_id = actor.id
        self._require_user(data.student_id, Role.STUDENT, "student_id")
        self._require_user(instructor_id, Role.INSTRUCTOR, "instructor_id")
        plan = models.WorkoutPlan(
            name=data.name,
            description=data.description,
            instructor_id=instructor_id,
            student_id=data.student_id,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        plan.items = self._build_items(data.items)
        plan = self.repo.create(plan)
        logger.info("workout plan created id=%s by=%s", plan.id, actor.id)
        return plan

    def list(self, actor: models.User, instructor_id: Optional[int] = None, student_id: Optional[int] = None) -> List[models.WorkoutPlan]:
        """Plans visible to `actor`; a filter outside that scope yields nothing."""
        if actor.role == Role.INSTRUCTOR:
            if instructor_id is not None and instructor_id != actor.id:
                return []
            instructor_id = actor.id
        elif actor.role == Role.STUDENT:
            if student_id is not None and student_id != actor.id:
                return []
            student_id = actor.id
        return self.repo.list(instructor_id=instructor_id, student_id=student_id)

    def get(self, actor: models.User, plan_id: int) -> models.WorkoutPlan:
        plan = self._get_or_404(plan_id)
        allowed = (
            actor.role == Role.ADMIN
            or self._is_owner(actor, plan)
            or (actor.role == Role.STUDENT and plan.student_id == actor.id)
        )
        if not allowed:
            raise _deny(actor, "get_workout_plan")
        return plan

    def _get_for_write(self, actor: models.User, plan_id: int, action: str) -> models.WorkoutPlan:
        _require_role(actor, STAFF_ROLES, action)
        plan = self._get_or_404(plan_id)
        if actor.role != Role.ADMIN and not self._is_owner(actor, plan):
            raise _deny(actor, action)
        return plan

    def update(self, actor: models.User, plan_id: int, data: schemas.WorkoutPlanUpdateIn) -> models.WorkoutPlan:
        """Partially update a plan; `items`, when given, replace the old list."""
        plan = self._get_for_write(actor, plan_id, "update_workout_plan")
        changes = data.model_dump(exclude_unset=True, exclude={"items"})
        _reject_nulls(changes, ("name", "student_id", "instructor_id", "start_date", "end_date"))
        if "items" in data.model_fields_set and data.items is None:
            raise ServiceError("items cannot be null")

        if "instructor_id" in changes and changes["instructor_id"] != plan.instructor_id:
            if actor.role != Role.ADMIN:
                raise _deny(actor, "reassign_workout_plan", "only an Admin can change a plan's instructor")
            self._require_user(changes["instructor_id"], Role.INSTRUCTOR, "instructor_id")
        if "student_id" in changes and changes["student_id"] != plan.student_id:
            self._require_user(changes["student_id"], Role.STUDENT, "student_id")
            if self.training_repo.exists_for_plan(plan.id):
                raise ConflictError("the student of a plan with linked sessions cannot be changed")

        start = changes.get("start_date", plan.start_date)
        end = changes.get("end_date", plan.end_date)
        if end < start:
            raise ServiceError("end_date must not be before start_date")

        if data.items is not None:
            plan.items = self._build_items(data.items)
        for field, value in changes.items():
            setattr(plan, field, value)
        plan.updated_at = models.utcnow()
        plan = self.repo.save(plan)
        logger.info("workout plan updated id=%s by=%s", plan.id, actor.id)
        return plan

    def delete(self, actor: models.User, plan_id: int) -> None:
        plan = self._get_for_write(actor, plan_id, "delete_workout_plan")
        if self.training_repo.exists_for_plan(plan.id):
            raise ConflictError("workout plan has linked training sessions and cannot be deleted")
        self.repo.delete(plan)
        logger.info("workout plan deleted id=%s by=%s", plan_id, actor.id)


class TrainingSessionService:
    """Training sessions logged for students, with their executions."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.TrainingSessionRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.plan_repo = repositories.WorkoutPlanRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)
        self.catalog = _CatalogChecks(session)
        self.policy = AccessPolicy(session)

    def _get_or_404(self, session_id: int) -> models.TrainingSession:
        training = self.repo.get(session_id)
        if not training:
            raise NotFoundError("training session not found")
        return training

    def _check_student(self, actor: models.User, student_id: int, action: str) -> None:
        if not self.policy.can_access_student_records(actor, student_id):
            raise _deny(actor, action)
        student = self.user_repo.get(student_id)
        if not student or student.role != Role.STUDENT:
            raise ServiceError("student_id must reference a user with role Student")

    def _check_plan(self, plan_id: Optional[int], student_id: int) -> None:
        if plan_id is None:
            return
        plan = self.plan_repo.get(plan_id)
        if not plan:
            raise ServiceError("workout plan %s does not exist" % plan_id)
        if plan.student_id != student_id:
            raise ServiceError("workout plan %s does not belong to student %s" % (plan_id, student_id))

    def _build_executions(self, executions: List[schemas.ExecutionIn]) -> List[models.Execution]:
        built = []
        for execution in executions:
            self.catalog.require_exercise(execution.exercise_id)
            modifier_ids = self.catalog.require_modifiers(execution.modifier_ids)
            row = models.Execution(
                exercise_id=execution.exercise_id,
                series_completed=execution.series_completed,
                repetitions_completed=execution.repetitions_completed,
                load_used=execution.load_used,
                observations=execution.observations,
            )
            row.modifier_links = [
                models.ExecutionModifier(modifier_id=mid, position=pos)
                for pos, mid in enumerate(modifier_ids)
            ]
            built.append(row)
        return built

    def create(self, actor: models.User, data: schemas.TrainingSessionCreateIn) -> models.TrainingSession:
        self._check_student(actor, data.student_id, "create_session")
        self._check_plan(data.workout_plan_id, data.student_id)
        training = models.TrainingSession(
            student_id=data.student_id,
            workout_plan_id=data.workout_plan_id,
            session_date=data.session_date,
            observations=data.observations,
        )
        training.executions = self._build_executions(data.executions)
        training = self.repo.create(training)
        logger.info("training session created id=%s by=%s", training.id, actor.id)
        return training

    def list(
        self,
        actor: models.User,
        student_id: Optional[int] = None,
        workout_plan_id: Optional[int] = None,
        session_date=None,
    ) -> List[models.TrainingSession]:
        """Sessions visible to `actor`, narrowed by the optional filters."""
        student_ids = None
        if actor.role == Role.INSTRUCTOR:
            student_ids = self.profile_repo.student_ids_of(actor.id)
        elif actor.role == Role.STUDENT:
            if student_id is not None and student_id != actor.id:
                return []
            student_id = actor.id
        return self.repo.list(
            student_id=student_id,
            workout_plan_id=workout_plan_id,
            session_date=session_date,
            student_ids=student_ids,
        )

    def get(self, actor: models.User, session_id: int) -> models.TrainingSession:
        training = self._get_or_404(session_id)
        if not self.policy.can_access_student_records(actor, training.student_id):
            raise _deny(actor, "get_session")
        return training

    def update(self, actor: models.User, session_id: int, data: schemas.TrainingSessionUpdateIn) -> models.TrainingSession:
        """Partially update a session; `executions`, when given, replace the old list.

        Moving the session to another student requires access to that
        student too, and the linked plan must belong to whoever ends up
        owning the session.
        """
        training = self.get(actor, session_id)
        changes = data.model_dump(exclude_unset=True, exclude={"executions"})
        _reject_nulls(changes, ("student_id", "session_date"))
        if "executions" in data.model_fields_set and data.executions is None:
            raise ServiceError("executions cannot be null")

        student_id = changes.get("student_id", training.student_id)
        if student_id != training.student_id:
            self._check_student(actor, student_id, "update_session")
        plan_id = changes.get("workout_plan_id", training.workout_plan_id)
        if "student_id" in changes or "workout_plan_id" in changes:
            self._check_plan(plan_id, student_id)

        if data.executions is not None:
            training.executions = self._build_executions(data.executions)
        for field, value in changes.items():
            setattr(training, field, value)
        training.updated_at = models.utcnow()
        training = self.repo.save(training)
        logger.info("training session updated id=%s by=%s", training.id, actor.id)
        return training

    def delete(self, actor: models.User, session_id: int) -> None:
        training = self.get(actor, session_id)
        self.repo.delete(training)
        logger.info("training session deleted id=%s by=%s", session_id, actor.id)


class Presenter:
    """Build read schemas, resolving the records a row refers to."""
    def __init__(self, session: Session):
        self.user_repo = repositories.UserRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)
        self.exercise_repo = repositories.ExerciseRepository(session)
        self.modifier_repo = repositories.ModifierRepository(session)
        self.plan_repo = repositories.WorkoutPlanRepository(session)

    def user(self, user: Optional[models.User], with_profile: bool = True) -> Optional[schemas.UserRead]:
        if user is None:
            return None
        out = schemas.UserRead.model_validate(user)
        if with_profile and user.role == Role.STUDENT:
            profile = self.profile_repo.get_student_profile(user.id)
            if profile is not None:
                out.profile = schemas.StudentProfileRead.model_validate(profile)
        elif with_profile and user.role == Role.INSTRUCTOR:
            profile = self.profile_repo.get_instructor_profile(user.id)
            if profile is not None:
                out.profile = schemas.InstructorProfileRead.model_validate(profile)
        return out

    def exercise(self, exercise: models.Exercise) -> schemas.ExerciseRead:
        return schemas.ExerciseRead.model_validate(exercise)

    def modifier(self, modifier: models.Modifier) -> schemas.ModifierRead:
        return schemas.ModifierRead.model_validate(modifier)

    def _exercise_by_id(self, exercise_id: int) -> Optional[schemas.ExerciseRead]:
        exercise = self.exercise_repo.get(exercise_id)
        return self.exercise(exercise) if exercise else None

    def _modifiers(self, modifier_ids: List[int]) -> List[schemas.ModifierRead]:
        return [self.modifier(m) for m in self.modifier_repo.get_many(modifier_ids)]

    def plan(self, plan: models.WorkoutPlan) -> schemas.WorkoutPlanRead:
        items = [
            schemas.PlanItemRead(
                id=item.id,
                exercise_id=item.exercise_id,
                series_count=item.series_count,
                repetitions_expected=item.repetitions_expected,
                load_suggested=item.load_suggested,
                observations=item.observations,
                order_index=item.order_index,
                modifier_ids=item.modifier_ids,
                exercise=self._exercise_by_id(item.exercise_id),
                modifiers=self._modifiers(item.modifier_ids),
            )
            for item in plan.items
        ]
        return schemas.WorkoutPlanRead(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            instructor_id=plan.instructor_id,
            student_id=plan.student_id,
            start_date=plan.start_date,
            end_date=plan.end_date,
            created_at=plan.created_at,
            updated_at=plan.updated_at,
            items=items,
            instructor=self.user(self.user_repo.get(plan.instructor_id), with_profile=False),
            student=self.user(self.user_repo.get(plan.student_id), with_profile=False),
        )

    def session(self, training: models.TrainingSession) -> schemas.TrainingSessionRead:
        executions = [
            schemas.ExecutionRead(
                id=e.id,
                exercise_id=e.exercise_id,
                series_completed=e.series_completed,
                repetitions_completed=e.repetitions_completed,
                load_used=e.load_used,
                observations=e.observations,
                modifier_ids=e.modifier_ids,
                created_at=e.created_at,
                updated_at=e.updated_at,
                exercise=self._exercise_by_id(e.exercise_id),
                modifiers=self._modifiers(e.modifier_ids),
            )
            for e in training.executions
        ]
        plan = self.plan_repo.get(training.workout_plan_id) if training.workout_plan_id else None
        return schemas.TrainingSessionRead(
            id=training.id,
            student_id=training.student_id,
            workout_plan_id=training.workout_plan_id,
            session_date=training.session_date,
            observations=training.observations,
            created_at=training.created_at,
            updated_at=training.updated_at,
            executions=executions,
            student=self.user(self.user_repo.get(training.student_id), with_profile=False),
            workout_plan=schemas.PlanSummaryRead.model_validate(plan) if plan else None,
        )
