"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the gym management backend.
Controllers are intentionally thin: they accept requests, resolve the
authenticated user, delegate to services and wrap results in the
response envelope (`{"status": "success", "data": {...}}`).

Endpoints implemented (all under /api/v1 unless noted):
- POST /auth/login
- POST /users/students, POST /users/instructors
- GET /users, GET/PUT/DELETE /users/{id}
- POST/GET /exercises, GET/PUT/DELETE /exercises/{id}
- POST/GET /modifiers, GET/PUT/DELETE /modifiers/{id}
- POST/GET /workout-plans, GET/PUT/DELETE /workout-plans/{id}
- POST/GET /sessions, GET/PUT/DELETE /sessions/{id}
- GET /health (no prefix)
- /graphql (no prefix)
"""

import json
import logging
import time
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models, schemas, services
from .auth import get_current_user, require_roles
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import ServiceError
from .graphql_api import graphql_app
from .models import Role, UserStatus
from .utils.rate_limit import FixedWindowRateLimiter
from .utils.security_headers import SecurityHeadersMiddleware

app = FastAPI(title="Gym Management API")
logger = logging.getLogger("gym_api.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.RATE_LIMIT_PER_WINDOW,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)
RATE_LIMITED_PREFIXES = ("/api", "/graphql")

staff_only = require_roles(Role.ADMIN, Role.INSTRUCTOR)
admin_only = require_roles(Role.ADMIN)


create_db_and_tables(seed=settings.SEED_DATA)


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _error(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "details": details},
        headers=headers,
    )


def _ok(**data) -> dict:
    return {"status": "success", "data": data}


def _ok_list(key: str, items: list) -> dict:
    return {"status": "success", "results": len(items), "data": {key: items}}


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not request.url.path.startswith(RATE_LIMITED_PREFIXES):
        return await call_next(request)
    allowed, remaining, retry_after = rate_limiter.hit(_client_key(request))
    if not allowed:
        logger.warning("rate limit exceeded client=%s path=%s", _client_key(request), request.url.path)
        return _error(
            429,
            "too many requests from this client, try again later",
            headers={"Retry-After": str(retry_after)},
        )
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(rate_limiter.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    log_request = request.url.path.startswith(RATE_LIMITED_PREFIXES)
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": _client_key(request),
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if log_request:
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": _client_key(request),
                },
                ensure_ascii=True,
            ),
        )
    return response


app.add_middleware(SecurityHeadersMiddleware, hsts=not settings.is_dev)

# Wide-open CORS keeps local browser frontends working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return _error(exc.status_code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg"))
    return _error(400, "invalid request data", details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "internal server error", str(exc) if settings.is_dev else None)


@app.get("/health")
def health():
    return {"status": "ok"}


api = APIRouter(prefix="/api/v1")


# --- auth -----------------------------------------------------------------

@api.post("/auth/login")
def login(payload: schemas.LoginIn, session: Session = Depends(get_session)):
    """Authenticate using email or document; returns a bearer token."""
    token = services.AuthService(session).authenticate(payload.login, payload.password)
    return _ok(**schemas.TokenOut(access_token=token).model_dump())


# --- users ----------------------------------------------------------------

@api.post("/users/students", status_code=201)
def create_student(
    payload: schemas.StudentCreateIn,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    user = services.UserService(session).create_student(current_user, payload)
    return _ok(user=services.Presenter(session).user(user))


@api.post("/users/instructors", status_code=201)
def create_instructor(
    payload: schemas.InstructorCreateIn,
    current_user: models.User = Depends(admin_only),
    session: Session = Depends(get_session),
):
    user = services.UserService(session).create_instructor(current_user, payload)
    return _ok(user=services.Presenter(session).user(user))


@api.get("/users")
def list_users(
    role: Optional[Role] = None,
    status: Optional[UserStatus] = None,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """List the users the caller can see (Admins may filter by role/status)."""
    presenter = services.Presenter(session)
    users = services.UserService(session).list(current_user, role=role, status=status)
    return _ok_list("users", [presenter.user(u) for u in users])


@api.get("/users/{user_id}")
def get_user(user_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    user = services.UserService(session).get(current_user, user_id)
    return _ok(user=services.Presenter(session).user(user))


@api.put("/users/{user_id}")
def update_user(
    user_id: int,
    payload: schemas.UserUpdateIn,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user = services.UserService(session).update(current_user, user_id, payload)
    return _ok(user=services.Presenter(session).user(user))


@api.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    services.UserService(session).delete(current_user, user_id)
    return Response(status_code=204)


# --- exercises ------------------------------------------------------------

@api.post("/exercises", status_code=201)
def create_exercise(
    payload: schemas.ExerciseIn,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    exercise = services.ExerciseService(session).create(current_user, payload)
    return _ok(exercise=services.Presenter(session).exercise(exercise))


@api.get("/exercises")
def list_exercises(
    muscle_category: Optional[str] = None,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    presenter = services.Presenter(session)
    exercises = services.ExerciseService(session).list(muscle_category=muscle_category)
    return _ok_list("exercises", [presenter.exercise(e) for e in exercises])


@api.get("/exercises/{exercise_id}")
def get_exercise(exercise_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    exercise = services.ExerciseService(session).get(exercise_id)
    return _ok(exercise=services.Presenter(session).exercise(exercise))


@api.put("/exercises/{exercise_id}")
def update_exercise(
    exercise_id: int,
    payload: schemas.ExerciseUpdate,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    exercise = services.ExerciseService(session).update(current_user, exercise_id, payload)
    return _ok(exercise=services.Presenter(session).exercise(exercise))


@api.delete("/exercises/{exercise_id}", status_code=204)
def delete_exercise(exercise_id: int, current_user: models.User = Depends(staff_only), session: Session = Depends(get_session)):
    services.ExerciseService(session).delete(current_user, exercise_id)
    return Response(status_code=204)


# --- modifiers ------------------------------------------------------------

@api.post("/modifiers", status_code=201)
def create_modifier(
    payload: schemas.ModifierIn,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    modifier = services.ModifierService(session).create(current_user, payload)
    return _ok(modifier=services.Presenter(session).modifier(modifier))


@api.get("/modifiers")
def list_modifiers(current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    presenter = services.Presenter(session)
    return _ok_list("modifiers", [presenter.modifier(m) for m in services.ModifierService(session).list()])


@api.get("/modifiers/{modifier_id}")
def get_modifier(modifier_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    modifier = services.ModifierService(session).get(modifier_id)
    return _ok(modifier=services.Presenter(session).modifier(modifier))


@api.put("/modifiers/{modifier_id}")
def update_modifier(
    modifier_id: int,
    payload: schemas.ModifierUpdate,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    modifier = services.ModifierService(session).update(current_user, modifier_id, payload)
    return _ok(modifier=services.Presenter(session).modifier(modifier))


@api.delete("/modifiers/{modifier_id}", status_code=204)
def delete_modifier(modifier_id: int, current_user: models.User = Depends(staff_only), session: Session = Depends(get_session)):
    services.ModifierService(session).delete(current_user, modifier_id)
    return Response(status_code=204)


# --- workout plans --------------------------------------------------------

@api.post("/workout-plans", status_code=201)
def create_workout_plan(
    payload: schemas.WorkoutPlanCreateIn,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    plan = services.WorkoutPlanService(session).create(current_user, payload)
    return _ok(workout_plan=services.Presenter(session).plan(plan))


@api.get("/workout-plans")
def list_workout_plans(
    instructor_id: Optional[int] = None,
    student_id: Optional[int] = None,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    presenter = services.Presenter(session)
    plans = services.WorkoutPlanService(session).list(current_user, instructor_id=instructor_id, student_id=student_id)
    return _ok_list("workout_plans", [presenter.plan(p) for p in plans])


@api.get("/workout-plans/{plan_id}")
def get_workout_plan(plan_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    plan = services.WorkoutPlanService(session).get(current_user, plan_id)
    return _ok(workout_plan=services.Presenter(session).plan(plan))


@api.put("/workout-plans/{plan_id}")
def update_workout_plan(
    plan_id: int,
    payload: schemas.WorkoutPlanUpdateIn,
    current_user: models.User = Depends(staff_only),
    session: Session = Depends(get_session),
):
    plan = services.WorkoutPlanService(session).update(current_user, plan_id, payload)
    return _ok(workout_plan=services.Presenter(session).plan(plan))


@api.delete("/workout-plans/{plan_id}", status_code=204)
def delete_workout_plan(plan_id: int, current_user: models.User = Depends(staff_only), session: Session = Depends(get_session)):
    services.WorkoutPlanService(session).delete(current_user, plan_id)
    return Response(status_code=204)


# --- training sessions ----------------------------------------------------

@api.post("/sessions", status_code=201)
def create_session(
    payload: schemas.TrainingSessionCreateIn,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    training = services.TrainingSessionService(session).create(current_user, payload)
    return _ok(session=services.Presenter(session).session(training))


@api.get("/sessions")
def list_sessions(
    student_id: Optional[int] = None,
    workout_plan_id: Optional[int] = None,
    session_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    presenter = services.Presenter(session)
    trainings = services.TrainingSessionService(session).list(
        current_user, student_id=student_id, workout_plan_id=workout_plan_id, session_date=session_date
    )
    return _ok_list("sessions", [presenter.session(t) for t in trainings])


@api.get("/sessions/{session_id}")
def get_training_session(session_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    training = services.TrainingSessionService(session).get(current_user, session_id)
    return _ok(session=services.Presenter(session).session(training))


@api.put("/sessions/{session_id}")
def update_session(
    session_id: int,
    payload: schemas.TrainingSessionUpdateIn,
    current_user: models.User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    training = services.TrainingSessionService(session).update(current_user, session_id, payload)
    return _ok(session=services.Presenter(session).session(training))


@api.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: int, current_user: models.User = Depends(get_current_user), session: Session = Depends(get_session)):
    services.TrainingSessionService(session).delete(current_user, session_id)
    return Response(status_code=204)


app.include_router(api)
app.include_router(graphql_app, prefix="/graphql")
