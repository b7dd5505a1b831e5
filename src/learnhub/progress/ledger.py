"""Progress ledger: the single writer for a learner's progress record.

Each intake operation follows the same sequence: reset the weekly window if
a new week has started, apply the event, refresh derived fields, advance the
streak when the event counts as study, then persist the whole record.
"""

import math
from collections.abc import Callable
from datetime import date, datetime

import structlog
from pydantic import BaseModel

from learnhub.models.progress import (
    Level,
    MaterialRecord,
    MaterialType,
    PathDefinition,
    PathProgress,
    ProgressRecord,
    QuizRecord,
    SubjectProgress,
)
from learnhub.progress import calendar, views
from learnhub.progress.streak import advance_streak
from learnhub.storage.progress_store import ProgressStore

logger = structlog.get_logger()

# Fallback for path ids missing from the catalog. Substring matching on the
# id is unreliable; catalogued paths always carry their subject explicitly.
SUBJECT_KEYWORDS: dict[str, str] = {
    "mathematics": "Mathematics",
    "science": "Science",
    "history": "History",
}
GENERAL_SUBJECT = "General"


class InvalidEventError(ValueError):
    """Raised when an intake operation receives input that would corrupt the record."""


class RewardRules(BaseModel):
    """XP and study-time awarded per event."""

    lesson_xp: int = 25
    lesson_hours: float = 0.5
    quiz_xp_per_point: int = 10
    study_xp_per_hour: int = 20

    @classmethod
    def from_settings(cls, settings) -> "RewardRules":
        return cls(
            lesson_xp=settings.lesson_xp,
            lesson_hours=settings.lesson_hours,
            quiz_xp_per_point=settings.quiz_xp_per_point,
            study_xp_per_hour=settings.study_xp_per_hour,
        )


def infer_subject(path_id: str) -> str:
    """Guess a subject from a path id by keyword containment."""
    lowered = path_id.lower()
    for keyword, subject in SUBJECT_KEYWORDS.items():
        if keyword in lowered:
            return subject
    return GENERAL_SUBJECT


def build_path_catalog(raw: dict[str, dict]) -> dict[str, PathDefinition]:
    """Turn the ``learning_paths.yaml`` mapping into path definitions."""
    return {
        path_id: PathDefinition(path_id=path_id, **entry)
        for path_id, entry in raw.items()
    }


def derive_subjects(
    subjects: list[SubjectProgress], path_progress: list[PathProgress]
) -> list[SubjectProgress]:
    """Recompute every subject's completion from the full set of paths.

    Paths whose subject is not tracked (e.g. "General") do not roll up.
    """
    completed: dict[str, int] = {}
    for path in path_progress:
        completed[path.subject] = completed.get(path.subject, 0) + len(path.completed_lesson_ids)

    derived = []
    for subject in subjects:
        count = completed.get(subject.name, 0)
        progress = min(100.0, count / subject.total_lessons * 100)
        derived.append(
            subject.model_copy(update={"lessons_completed": count, "progress": progress})
        )
    return derived


class ProgressLedger:
    """Applies study events to a progress record and keeps it persisted.

    Args:
        record: The record to mutate in place.
        store: Where to persist after each event. None keeps the record in memory.
        clock: Returns the current local time.
        path_catalog: Known learning paths by id.
        default_path_lessons: Lesson count for uncatalogued paths.
        rewards: XP and study-time rules.
    """

    def __init__(
        self,
        record: ProgressRecord,
        store: ProgressStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
        path_catalog: dict[str, PathDefinition] | None = None,
        default_path_lessons: int = 12,
        rewards: RewardRules | None = None,
    ):
        self.record = record
        self.store = store
        self.clock = clock
        self.path_catalog = path_catalog or {}
        self.default_path_lessons = default_path_lessons
        self.rewards = rewards or RewardRules()

    @property
    def today(self) -> date:
        return calendar.today(self.clock())

    # -- intake operations ---------------------------------------------------

    def record_quiz_score(
        self,
        subject: str,
        score: int,
        total_questions: int,
        is_ai_generated: bool = False,
    ) -> QuizRecord:
        """Record a finished quiz and award ``score * 10`` XP."""
        if total_questions <= 0:
            raise InvalidEventError(f"total_questions must be positive, got {total_questions}")
        if score < 0 or score > total_questions:
            raise InvalidEventError(
                f"score must be between 0 and {total_questions}, got {score}"
            )

        now = self.clock()
        self._check_weekly_reset(now)
        record = self.record

        quiz = QuizRecord(
            subject=subject,
            score=score,
            total_questions=total_questions,
            date=now,
            is_ai_generated=is_ai_generated,
        )
        record.quiz_scores.append(quiz)

        xp = score * self.rewards.quiz_xp_per_point
        self._award_xp(xp)
        calendar.bucket_for(record, now.date()).xp_earned += xp

        if is_ai_generated:
            record.ai_feature_usage.quizzes_generated += 1
            record.ai_feature_usage.total_interactions += 1

        advance_streak(record, now.date())
        self._persist()
        logger.info("quiz_recorded", subject=subject, score=score,
                    total_questions=total_questions, xp=xp)
        return quiz

    def record_ai_material(
        self,
        subject: str,
        topic: str,
        type: MaterialType | str,
        performance: float | None = None,
    ) -> MaterialRecord:
        """Record AI-generated material. Does not count toward the streak."""
        try:
            material_type = MaterialType(type)
        except ValueError:
            raise InvalidEventError(f"Unknown material type: {type!r}") from None
        if performance is not None and not 0 <= performance <= 100:
            raise InvalidEventError(f"performance must be within 0-100, got {performance}")

        now = self.clock()
        self._check_weekly_reset(now)
        record = self.record

        material = MaterialRecord(
            subject=subject,
            topic=topic,
            date=now,
            type=material_type,
            performance=performance,
        )
        record.ai_materials_generated.append(material)

        usage = record.ai_feature_usage
        usage.total_interactions += 1
        if material_type is MaterialType.STUDY_MATERIAL:
            usage.materials_generated += 1
        elif material_type is MaterialType.TUTOR_SESSION:
            usage.tutor_sessions += 1

        self._persist()
        logger.info("ai_material_recorded", subject=subject, type=material_type.value)
        return material

    def record_study_session(self, subject: str, duration_hours: float) -> int:
        """Log study time and return the XP it earned (20 per hour, floored)."""
        if not math.isfinite(duration_hours) or duration_hours <= 0:
            raise InvalidEventError(f"duration_hours must be positive, got {duration_hours}")

        now = self.clock()
        self._check_weekly_reset(now)
        record = self.record

        xp = math.floor(duration_hours * self.rewards.study_xp_per_hour)
        self._award_xp(xp)
        bucket = calendar.bucket_for(record, now.date())
        bucket.hours_studied += duration_hours
        bucket.xp_earned += xp

        advance_streak(record, now.date())
        self._persist()
        logger.info("study_session_recorded", subject=subject,
                    duration_hours=duration_hours, xp=xp)
        return xp

    def complete_lesson(self, path_id: str, lesson_id: str) -> PathProgress:
        """Mark a lesson done and roll the result up into subjects and goals."""
        if not path_id or not lesson_id:
            raise InvalidEventError("path_id and lesson_id are required")
        definition = self.path_catalog.get(path_id)
        if definition is not None and not definition.has_lesson(lesson_id):
            raise InvalidEventError(f"Path {path_id!r} has no lesson {lesson_id!r}")

        now = self.clock()
        self._check_weekly_reset(now)
        record = self.record

        path = record.find_path(path_id)
        if path is None:
            path = self._new_path(path_id, now)
            record.path_progress.append(path)

        if lesson_id in path.completed_lesson_ids:
            # The path set stays unique; the visit still counts as study below.
            logger.info("lesson_recompleted", path_id=path_id, lesson_id=lesson_id)
        else:
            path.completed_lesson_ids.append(lesson_id)
        path.last_updated = now

        record.subjects = derive_subjects(record.subjects, record.path_progress)

        bucket = calendar.bucket_for(record, now.date())
        bucket.xp_earned += self.rewards.lesson_xp
        bucket.lessons_completed += 1
        bucket.hours_studied += self.rewards.lesson_hours

        record.completed_lessons += 1
        record.weekly_completed = min(record.weekly_goal, record.weekly_completed + 1)
        self._award_xp(self.rewards.lesson_xp)

        advance_streak(record, now.date())
        self._persist()
        logger.info("lesson_completed", path_id=path_id, lesson_id=lesson_id,
                    subject=path.subject, weekly_completed=record.weekly_completed)
        return path

    # -- derived views -------------------------------------------------------

    def weekly_series(self) -> list[views.DayActivity]:
        return views.weekly_series(self.record, self.today)

    def monthly_performance(self) -> list[views.MonthPerformance]:
        return views.monthly_performance(self.record, self.today)

    def dashboard(self) -> views.DashboardView:
        return views.dashboard(self.record, self.today)

    def path_overview(self) -> list[views.PathOverview]:
        return views.path_overview(self.record, self.path_catalog)

    # -- internals -----------------------------------------------------------

    def _check_weekly_reset(self, now: datetime) -> bool:
        current = calendar.week_start(now)
        if self.record.week_start_date != current:
            logger.info(
                "weekly_progress_reset",
                previous_week=str(self.record.week_start_date),
                week_start=str(current),
            )
            self.record.weekly_completed = 0
            self.record.week_start_date = current
            return True
        return False

    def _award_xp(self, xp: int) -> None:
        self.record.total_xp += xp
        self.record.current_level = Level.from_xp(self.record.total_xp)

    def _new_path(self, path_id: str, now: datetime) -> PathProgress:
        definition = self.path_catalog.get(path_id)
        if definition is not None:
            subject, total = definition.subject, definition.total_lessons
        else:
            subject, total = infer_subject(path_id), self.default_path_lessons
            logger.warning("path_not_in_catalog", path_id=path_id, inferred_subject=subject)
        return PathProgress(
            path_id=path_id, subject=subject, total_lessons=total, last_updated=now
        )

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.record)
