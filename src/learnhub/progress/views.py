"""Read-only projections of a progress record for charts and the dashboard.

Nothing here mutates the record or caches results; every view is rebuilt
from the record on each call.
"""

from datetime import date

from pydantic import BaseModel

from learnhub.models.progress import (
    LessonType,
    Level,
    MaterialType,
    PathDefinition,
    ProgressRecord,
)
from learnhub.progress import calendar
from learnhub.progress.streak import is_streak_alive


class DayActivity(BaseModel):
    day: str
    date: date
    hours_studied: float
    xp_earned: int


class MonthPerformance(BaseModel):
    month: str
    year: int
    average_score: int


class SubjectTime(BaseModel):
    subject: str
    hours: float


class Achievement(BaseModel):
    title: str
    description: str
    icon: str
    earned: bool


class LessonStatus(BaseModel):
    id: str
    title: str
    duration_minutes: int
    type: LessonType
    completed: bool
    locked: bool


class PathOverview(BaseModel):
    """Per-path completion as shown in the path browser."""

    path_id: str
    title: str
    subject: str
    completed: int
    total: int
    progress: float
    next_lesson: LessonStatus | None = None
    lessons: list[LessonStatus]


class DashboardView(BaseModel):
    """Everything the progress dashboard renders, in one payload."""

    total_xp: int
    current_level: Level
    current_streak: int
    streak_alive: bool
    completed_lessons: int
    total_lessons: int
    overall_completion: float
    weekly_goal: int
    weekly_completed: int
    weekly_hours: float
    quiz_average: int
    quizzes_taken: int
    weekly_series: list[DayActivity]
    monthly_performance: list[MonthPerformance]
    subject_time: list[SubjectTime]
    achievements: list[Achievement]


def weekly_series(record: ProgressRecord, today: date) -> list[DayActivity]:
    """Hours and XP for the seven days ending ``today``, oldest first."""
    series = []
    for day in calendar.last_n_days(7, today):
        bucket = record.daily_activity.get(day)
        series.append(DayActivity(
            day=calendar.weekday_label(day),
            date=day,
            hours_studied=bucket.hours_studied if bucket else 0.0,
            xp_earned=bucket.xp_earned if bucket else 0,
        ))
    return series


def monthly_performance(record: ProgressRecord, today: date) -> list[MonthPerformance]:
    """Average quiz percentage for each of the six months ending this month."""
    performance = []
    for year, month in calendar.last_n_months(6, today):
        percents = [
            quiz.percent for quiz in record.quiz_scores
            if quiz.date.year == year and quiz.date.month == month
        ]
        average = round(sum(percents) / len(percents)) if percents else 0
        performance.append(MonthPerformance(
            month=calendar.month_label(month), year=year, average_score=average,
        ))
    return performance


def quiz_average(record: ProgressRecord) -> int:
    if not record.quiz_scores:
        return 0
    return round(sum(q.percent for q in record.quiz_scores) / len(record.quiz_scores))


def weekly_hours(record: ProgressRecord, today: date) -> float:
    return sum(day.hours_studied for day in weekly_series(record, today))


def overall_completion(record: ProgressRecord) -> float:
    return min(100.0, record.completed_lessons / record.total_lessons * 100)


def subject_time_breakdown(record: ProgressRecord, hours_per_lesson: float = 0.5) -> list[SubjectTime]:
    """Estimated study time per subject, for subjects with any completed lessons."""
    return [
        SubjectTime(subject=s.name, hours=s.lessons_completed * hours_per_lesson)
        for s in record.subjects
        if s.lessons_completed > 0
    ]


def achievements(record: ProgressRecord) -> list[Achievement]:
    ai_quizzes = sum(1 for q in record.quiz_scores if q.is_ai_generated)
    study_materials = sum(
        1 for m in record.ai_materials_generated if m.type == MaterialType.STUDY_MATERIAL
    )
    perfect_scores = sum(1 for q in record.quiz_scores if q.score == q.total_questions)

    return [
        Achievement(title="Week Warrior", description="7-day learning streak",
                    icon="🔥", earned=record.current_streak >= 7),
        Achievement(title="Quiz Master", description="5 perfect quiz scores",
                    icon="🎯", earned=perfect_scores >= 5),
        Achievement(title="AI Explorer", description="Used AI quiz generation 3 times",
                    icon="🤖", earned=ai_quizzes >= 3),
        Achievement(title="Study Creator", description="Generated 5 AI study materials",
                    icon="📚", earned=study_materials >= 5),
        Achievement(title="Subject Expert", description="Complete 80% of a subject",
                    icon="🎓", earned=any(s.progress >= 80 for s in record.subjects)),
        Achievement(title="Consistent Learner", description="30-day streak",
                    icon="📖", earned=record.current_streak >= 30),
    ]


def path_overview(
    record: ProgressRecord, catalog: dict[str, PathDefinition]
) -> list[PathOverview]:
    """Catalogued paths in catalog order, then any other paths the learner has touched.

    A lesson is unlocked when it is the first in its path or the lesson before
    it is completed. ``next_lesson`` is the first unlocked, uncompleted lesson.
    """
    overview = []
    for path_id, definition in catalog.items():
        progress = record.find_path(path_id)
        done = set(progress.completed_lesson_ids) if progress else set()
        lessons = []
        previous_done = True
        for lesson in definition.lessons:
            completed = lesson.id in done
            lessons.append(LessonStatus(
                **lesson.model_dump(),
                completed=completed,
                locked=not (completed or previous_done),
            ))
            previous_done = completed
        if definition.lessons:
            completed_count = sum(1 for status in lessons if status.completed)
        else:
            completed_count = len(done)
        overview.append(PathOverview(
            path_id=path_id,
            title=definition.title,
            subject=definition.subject,
            completed=completed_count,
            total=definition.total_lessons,
            progress=min(100.0, completed_count / definition.total_lessons * 100),
            next_lesson=next(
                (s for s in lessons if not s.completed and not s.locked), None
            ),
            lessons=lessons,
        ))

    for progress in record.path_progress:
        if progress.path_id in catalog:
            continue
        completed_count = len(progress.completed_lesson_ids)
        overview.append(PathOverview(
            path_id=progress.path_id,
            title=progress.path_id,
            subject=progress.subject,
            completed=completed_count,
            total=progress.total_lessons,
            progress=min(100.0, completed_count / progress.total_lessons * 100),
            lessons=[],
        ))
    return overview


def dashboard(record: ProgressRecord, today: date) -> DashboardView:
    return DashboardView(
        total_xp=record.total_xp,
        current_level=record.current_level,
        current_streak=record.current_streak,
        streak_alive=is_streak_alive(record, today),
        completed_lessons=record.completed_lessons,
        total_lessons=record.total_lessons,
        overall_completion=overall_completion(record),
        weekly_goal=record.weekly_goal,
        weekly_completed=record.weekly_completed,
        weekly_hours=weekly_hours(record, today),
        quiz_average=quiz_average(record),
        quizzes_taken=len(record.quiz_scores),
        weekly_series=weekly_series(record, today),
        monthly_performance=monthly_performance(record, today),
        subject_time=subject_time_breakdown(record),
        achievements=achievements(record),
    )
