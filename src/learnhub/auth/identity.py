"""Static demo-account login and progress seeding."""

from datetime import date

import structlog
from pydantic import BaseModel, Field

from learnhub.models.progress import (
    DailyBucket,
    Level,
    PathProgress,
    ProgressRecord,
    QuizRecord,
    SubjectProgress,
    default_subjects,
)
from learnhub.progress.calendar import monday_of
from learnhub.progress.ledger import derive_subjects

logger = structlog.get_logger()


class AuthenticationError(Exception):
    """Raised when a login attempt does not match any account."""


class User(BaseModel):
    id: str
    name: str
    email: str
    avatar: str | None = None


class SubjectSeed(BaseModel):
    name: str
    lessons_completed: int = Field(default=0, ge=0)
    total_lessons: int | None = Field(default=None, gt=0)


class ProgressSeed(BaseModel):
    """Partial progress shipped with a demo account."""

    total_xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    completed_lessons: int = Field(default=0, ge=0)
    weekly_completed: int = Field(default=0, ge=0)
    subjects: list[SubjectSeed] = Field(default_factory=list)
    quiz_scores: list[QuizRecord] = Field(default_factory=list)
    daily_activity: list[DailyBucket] = Field(default_factory=list)


class Account(BaseModel):
    id: str
    name: str
    email: str
    password: str
    avatar: str | None = None
    progress: ProgressSeed | None = None

    def to_user(self) -> User:
        return User(id=self.id, name=self.name, email=self.email, avatar=self.avatar)


class LoginResult(BaseModel):
    user: User
    seed: ProgressSeed | None = None


def new_record(today: date, weekly_goal: int = 5, total_lessons: int = 100) -> ProgressRecord:
    """A zero-valued record for a learner with no history."""
    return ProgressRecord(
        weekly_goal=weekly_goal,
        total_lessons=total_lessons,
        week_start_date=monday_of(today),
    )


def build_seed_record(
    seed: ProgressSeed | None,
    today: date,
    weekly_goal: int = 5,
    total_lessons: int = 100,
) -> ProgressRecord:
    """Expand a demo seed into a full record, defaulting whatever it omits.

    Seeded per-subject lesson counts become a synthetic "<subject>-prior" path
    so subject progress is still derived from path progress.
    """
    record = new_record(today, weekly_goal=weekly_goal, total_lessons=total_lessons)
    if seed is None:
        return record

    subjects: list[SubjectProgress] = default_subjects()
    paths: list[PathProgress] = []
    for subject_seed in seed.subjects:
        subject = next((s for s in subjects if s.name == subject_seed.name), None)
        if subject is None:
            subject = SubjectProgress(name=subject_seed.name)
            subjects.append(subject)
        if subject_seed.total_lessons is not None:
            subject.total_lessons = subject_seed.total_lessons
        if subject_seed.lessons_completed:
            paths.append(PathProgress(
                path_id=f"{subject_seed.name.lower()}-prior",
                subject=subject_seed.name,
                completed_lesson_ids=[
                    f"prior-{i}" for i in range(1, subject_seed.lessons_completed + 1)
                ],
                total_lessons=subject.total_lessons,
            ))

    record.total_xp = seed.total_xp
    record.current_level = Level.from_xp(seed.total_xp)
    record.current_streak = seed.current_streak
    record.last_active_date = today if seed.current_streak else None
    record.completed_lessons = seed.completed_lessons
    record.weekly_completed = min(seed.weekly_completed, record.weekly_goal)
    record.path_progress = paths
    record.subjects = derive_subjects(subjects, paths)
    record.quiz_scores = sorted(seed.quiz_scores, key=lambda q: q.date)
    record.daily_activity = {
        bucket.date: bucket for bucket in sorted(seed.daily_activity, key=lambda b: b.date)
    }
    return record


class IdentityProvider:
    """Resolves login attempts against a fixed list of accounts.

    Args:
        accounts: Raw account dicts (as loaded from ``demo_accounts.yaml``).
    """

    def __init__(self, accounts: list[dict]):
        self.accounts = [Account.model_validate(a) for a in accounts]

    def authenticate(self, email: str, password: str) -> LoginResult:
        for account in self.accounts:
            if account.email == email and account.password == password:
                logger.info("login_succeeded", user_id=account.id)
                return LoginResult(user=account.to_user(), seed=account.progress)
        logger.warning("login_rejected", email=email)
        raise AuthenticationError("Invalid email or password")

    def demo_credentials(self) -> list[dict]:
        return [
            {"name": a.name, "email": a.email, "password": a.password}
            for a in self.accounts
        ]
