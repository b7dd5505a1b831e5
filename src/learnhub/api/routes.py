"""REST API routes for login and progress tracking."""

import functools
from collections.abc import Callable

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from learnhub.auth.identity import AuthenticationError, IdentityProvider
from learnhub.config import get_settings, load_demo_accounts, load_learning_paths
from learnhub.models.progress import MaterialType, ProgressRecord
from learnhub.progress.ledger import InvalidEventError, build_path_catalog
from learnhub.session import LearnerSession, SessionNotFoundError, SessionRegistry
from learnhub.storage.progress_store import StoreError

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class LoginRequest(BaseModel):
    email: str
    password: str


class QuizEvent(BaseModel):
    subject: str
    score: int
    total_questions: int
    is_ai_generated: bool = False


class MaterialEvent(BaseModel):
    subject: str
    topic: str
    type: MaterialType
    performance: float | None = None


class StudySessionEvent(BaseModel):
    subject: str
    duration_hours: float


class LessonEvent(BaseModel):
    path_id: str = Field(min_length=1)
    lesson_id: str = Field(min_length=1)


@functools.lru_cache
def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(load_demo_accounts())


@functools.lru_cache
def get_registry() -> SessionRegistry:
    return SessionRegistry(get_settings(), path_catalog=build_path_catalog(load_learning_paths()))


def _session(user_id: str) -> LearnerSession:
    try:
        return get_registry().get(user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="No active session for user")


def _apply(user_id: str, event: Callable[[LearnerSession], object]) -> ProgressRecord:
    session = _session(user_id)
    try:
        event(session)
    except InvalidEventError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreError as e:
        # The in-memory record already holds the event; only persistence failed.
        logger.error("progress_persist_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=503, detail="Progress could not be saved")
    return session.record


@router.post("/auth/login")
async def login(request: LoginRequest) -> dict:
    """Log in with a demo account and open a progress session."""
    try:
        result = get_identity_provider().authenticate(request.email, request.password)
    except AuthenticationError:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    try:
        session = get_registry().open(result)
    except StoreError as e:
        logger.error("session_open_failed", user_id=result.user.id, error=str(e))
        raise HTTPException(status_code=503, detail="Progress could not be saved")
    return {
        "user": result.user.model_dump(),
        "dashboard": session.ledger.dashboard().model_dump(mode="json"),
    }


@router.post("/auth/logout/{user_id}")
async def logout(user_id: str) -> dict:
    try:
        get_registry().close(user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="No active session for user")
    except StoreError as e:
        logger.error("session_close_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=503, detail="Progress could not be cleared")
    return {"status": "logged_out"}


@router.get("/demo-accounts")
async def demo_accounts() -> list[dict]:
    return get_identity_provider().demo_credentials()


@router.get("/progress/{user_id}")
async def get_progress(user_id: str) -> ProgressRecord:
    return _session(user_id).record


@router.get("/progress/{user_id}/dashboard")
async def get_dashboard(user_id: str) -> dict:
    return _session(user_id).ledger.dashboard().model_dump(mode="json")


@router.get("/progress/{user_id}/weekly")
async def get_weekly(user_id: str) -> list[dict]:
    """Hours and XP for each of the last seven days."""
    return [d.model_dump(mode="json") for d in _session(user_id).ledger.weekly_series()]


@router.get("/progress/{user_id}/monthly")
async def get_monthly(user_id: str) -> list[dict]:
    """Average quiz score for each of the last six months."""
    return [m.model_dump() for m in _session(user_id).ledger.monthly_performance()]


@router.get("/paths/{user_id}")
async def get_paths(user_id: str) -> list[dict]:
    """Learning paths with per-lesson completion and the next lesson to take."""
    return [p.model_dump(mode="json") for p in _session(user_id).ledger.path_overview()]


@router.post("/progress/{user_id}/quiz")
async def post_quiz(user_id: str, event: QuizEvent) -> ProgressRecord:
    return _apply(user_id, lambda s: s.ledger.record_quiz_score(
        event.subject, event.score, event.total_questions, event.is_ai_generated,
    ))


@router.post("/progress/{user_id}/material")
async def post_material(user_id: str, event: MaterialEvent) -> ProgressRecord:
    return _apply(user_id, lambda s: s.ledger.record_ai_material(
        event.subject, event.topic, event.type, event.performance,
    ))


@router.post("/progress/{user_id}/study-session")
async def post_study_session(user_id: str, event: StudySessionEvent) -> ProgressRecord:
    return _apply(user_id, lambda s: s.ledger.record_study_session(
        event.subject, event.duration_hours,
    ))


@router.post("/progress/{user_id}/lessons")
async def post_lesson(user_id: str, event: LessonEvent) -> ProgressRecord:
    return _apply(user_id, lambda s: s.ledger.complete_lesson(event.path_id, event.lesson_id))


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
