"""Progress record models for tracking study activity across sessions."""

from datetime import date, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Level(StrEnum):
    """Learner level derived from accumulated XP."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"

    @classmethod
    def from_xp(cls, xp: int) -> "Level":
        """Determine level from total XP."""
        if xp < 500:
            return cls.BEGINNER
        elif xp < 1000:
            return cls.INTERMEDIATE
        elif xp < 2000:
            return cls.ADVANCED
        else:
            return cls.EXPERT


class MaterialType(StrEnum):
    """Kinds of AI-generated material."""

    STUDY_MATERIAL = "study_material"
    QUIZ = "quiz"
    TUTOR_SESSION = "tutor_session"


class SubjectProgress(BaseModel):
    """Completion of one tracked subject. Rebuilt from path progress, never hand-set."""

    name: str
    progress: float = Field(default=0.0, ge=0, le=100)
    lessons_completed: int = Field(default=0, ge=0)
    total_lessons: int = Field(default=25, gt=0)
    color: str = "#6B7280"
    icon: str = ""


class QuizRecord(BaseModel):
    """A single scored quiz."""

    model_config = ConfigDict(frozen=True)

    subject: str
    score: int = Field(ge=0)
    total_questions: int = Field(gt=0)
    date: datetime = Field(default_factory=datetime.now)
    is_ai_generated: bool = False

    @model_validator(mode="after")
    def _score_within_total(self) -> "QuizRecord":
        if self.score > self.total_questions:
            raise ValueError(
                f"score {self.score} exceeds total_questions {self.total_questions}"
            )
        return self

    @property
    def percent(self) -> float:
        return self.score / self.total_questions * 100


class MaterialRecord(BaseModel):
    """A piece of AI-generated material (study notes, quiz, tutor exchange)."""

    model_config = ConfigDict(frozen=True)

    subject: str
    topic: str
    date: datetime = Field(default_factory=datetime.now)
    type: MaterialType
    performance: float | None = Field(default=None, ge=0, le=100)


class DailyBucket(BaseModel):
    """Activity accumulated on one calendar day."""

    date: date
    hours_studied: float = Field(default=0.0, ge=0)
    xp_earned: int = Field(default=0, ge=0)
    lessons_completed: int = Field(default=0, ge=0)


class PathProgress(BaseModel):
    """Lessons completed within one learning path."""

    path_id: str
    subject: str
    completed_lesson_ids: list[str] = Field(default_factory=list)
    total_lessons: int = Field(default=12, gt=0)
    last_updated: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _unique_lesson_ids(self) -> "PathProgress":
        self.completed_lesson_ids = list(dict.fromkeys(self.completed_lesson_ids))
        return self


class LessonType(StrEnum):
    VIDEO = "video"
    READING = "reading"
    QUIZ = "quiz"
    PRACTICE = "practice"


class LessonDefinition(BaseModel):
    """One lesson in a catalogued learning path."""

    id: str
    title: str
    duration_minutes: int = Field(default=0, ge=0)
    type: LessonType = LessonType.READING


class PathDefinition(BaseModel):
    """Catalog entry describing a learning path.

    When ``lessons`` is listed it is the ordered lesson sequence of the path
    and fixes ``total_lessons``; an empty list leaves lesson ids unrestricted.
    """

    path_id: str
    title: str = ""
    subject: str
    total_lessons: int = Field(default=12, gt=0)
    lessons: list[LessonDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _lessons_fix_total(self) -> "PathDefinition":
        ids = [lesson.id for lesson in self.lessons]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate lesson ids in path {self.path_id}")
        if self.lessons:
            self.total_lessons = len(self.lessons)
        return self

    def has_lesson(self, lesson_id: str) -> bool:
        return not self.lessons or any(lesson.id == lesson_id for lesson in self.lessons)


class AIFeatureUsage(BaseModel):
    tutor_sessions: int = Field(default=0, ge=0)
    materials_generated: int = Field(default=0, ge=0)
    quizzes_generated: int = Field(default=0, ge=0)
    total_interactions: int = Field(default=0, ge=0)


DEFAULT_SUBJECTS: list[dict] = [
    {"name": "Mathematics", "color": "#3B82F6", "icon": "📊", "total_lessons": 25},
    {"name": "Science", "color": "#10B981", "icon": "🔬", "total_lessons": 25},
    {"name": "History", "color": "#8B5CF6", "icon": "📚", "total_lessons": 25},
    {"name": "Literature", "color": "#EC4899", "icon": "📖", "total_lessons": 25},
]


def default_subjects() -> list[SubjectProgress]:
    return [SubjectProgress(**s) for s in DEFAULT_SUBJECTS]


def _this_monday() -> date:
    today = date.today()
    return today - timedelta(days=today.weekday())


class ProgressRecord(BaseModel):
    """Everything the app tracks about one learner's progress."""

    total_xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    current_level: Level = Level.BEGINNER
    completed_lessons: int = Field(default=0, ge=0)
    total_lessons: int = Field(default=100, gt=0)
    weekly_goal: int = Field(default=5, gt=0)
    weekly_completed: int = Field(default=0, ge=0)
    week_start_date: date = Field(default_factory=_this_monday)
    last_active_date: date | None = None  # None until the first qualifying activity
    subjects: list[SubjectProgress] = Field(default_factory=default_subjects)
    quiz_scores: list[QuizRecord] = Field(default_factory=list)
    ai_materials_generated: list[MaterialRecord] = Field(default_factory=list)
    daily_activity: dict[date, DailyBucket] = Field(default_factory=dict)
    path_progress: list[PathProgress] = Field(default_factory=list)
    ai_feature_usage: AIFeatureUsage = Field(default_factory=AIFeatureUsage)

    @model_validator(mode="after")
    def _clamp_weekly(self) -> "ProgressRecord":
        if self.weekly_completed > self.weekly_goal:
            self.weekly_completed = self.weekly_goal
        return self

    def find_path(self, path_id: str) -> PathProgress | None:
        for path in self.path_progress:
            if path.path_id == path_id:
                return path
        return None

    def find_subject(self, name: str) -> SubjectProgress | None:
        for subject in self.subjects:
            if subject.name == name:
                return subject
        return None
