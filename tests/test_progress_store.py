"""Tests for progress record persistence."""

from datetime import date, datetime

import pytest

from learnhub.models.progress import (
    DailyBucket,
    MaterialRecord,
    PathProgress,
    ProgressRecord,
    QuizRecord,
)
from learnhub.storage.progress_store import ProgressStore, StoreError


@pytest.fixture
def store(tmp_path):
    return ProgressStore("user_1", tmp_path)


def _fail_replace(src, dst):
    raise OSError("device busy")


def _populated_record() -> ProgressRecord:
    record = ProgressRecord(
        total_xp=155,
        current_streak=3,
        completed_lessons=2,
        weekly_completed=2,
        week_start_date=date(2026, 10, 19),
        last_active_date=date(2026, 10, 21),
    )
    record.quiz_scores = [
        QuizRecord(subject="B", score=3, total_questions=5, date=datetime(2026, 10, 21, 9)),
        QuizRecord(subject="A", score=5, total_questions=5, date=datetime(2026, 10, 20, 9),
                   is_ai_generated=True),
    ]
    record.ai_materials_generated = [
        MaterialRecord(subject="Science", topic="Cells", type="tutor_session",
                       date=datetime(2026, 10, 21, 11)),
    ]
    for day in (date(2026, 10, 21), date(2026, 10, 19)):
        record.daily_activity[day] = DailyBucket(date=day, hours_studied=0.5, xp_earned=25)
    record.path_progress = [
        PathProgress(path_id="science-basics", subject="Science",
                     completed_lesson_ids=["3", "1"], total_lessons=8,
                     last_updated=datetime(2026, 10, 21, 11)),
    ]
    return record


class TestLoad:
    def test_missing_returns_none(self, store):
        assert store.load() is None

    def test_corrupt_file_raises_store_error(self, store):
        store.path.write_text("{not json")
        with pytest.raises(StoreError):
            store.load()

    def test_invalid_record_raises_store_error(self, store):
        store.path.write_text('{"total_xp": -5}')
        with pytest.raises(StoreError):
            store.load()


class TestSave:
    def test_roundtrip_preserves_values_and_order(self, store):
        record = _populated_record()
        store.save(record)
        loaded = store.load()
        assert loaded.model_dump() == record.model_dump()
        assert [q.subject for q in loaded.quiz_scores] == ["B", "A"]
        assert list(loaded.daily_activity) == [date(2026, 10, 21), date(2026, 10, 19)]
        assert loaded.path_progress[0].completed_lesson_ids == ["3", "1"]
        assert isinstance(loaded.week_start_date, date)
        assert isinstance(loaded.quiz_scores[0].date, datetime)

    def test_save_overwrites_whole_record(self, store):
        store.save(_populated_record())
        store.save(ProgressRecord(total_xp=1))
        loaded = store.load()
        assert loaded.total_xp == 1
        assert loaded.quiz_scores == []

    def test_no_temp_files_left(self, store, tmp_path):
        store.save(ProgressRecord())
        assert [p.name for p in tmp_path.iterdir()] == ["user_1.json"]

    def test_creates_missing_directory(self, tmp_path):
        store = ProgressStore("user_2", tmp_path / "nested" / "progress")
        store.save(ProgressRecord())
        assert store.load() is not None

    def test_unwritable_directory_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = ProgressStore("user_3", blocker / "progress")
        with pytest.raises(StoreError):
            store.save(ProgressRecord())

    def test_failed_replace_removes_temp_file(self, store, tmp_path, monkeypatch):
        monkeypatch.setattr("learnhub.storage.progress_store.os.replace", _fail_replace)
        with pytest.raises(StoreError):
            store.save(ProgressRecord())
        assert list(tmp_path.iterdir()) == []

    def test_failed_replace_keeps_previous_record(self, store, tmp_path, monkeypatch):
        store.save(ProgressRecord(total_xp=40))
        monkeypatch.setattr("learnhub.storage.progress_store.os.replace", _fail_replace)
        with pytest.raises(StoreError):
            store.save(ProgressRecord(total_xp=90))
        assert [p.name for p in tmp_path.iterdir()] == ["user_1.json"]
        monkeypatch.undo()
        assert store.load().total_xp == 40


class TestQuarantine:
    def test_moves_file_aside(self, store, tmp_path):
        store.path.write_text("garbage")
        target = store.quarantine()
        assert target == tmp_path / "user_1.corrupt.json"
        assert target.read_text() == "garbage"
        assert store.load() is None

    def test_missing_file_returns_none(self, store):
        assert store.quarantine() is None


class TestClear:
    def test_clear_removes_record(self, store):
        store.save(ProgressRecord())
        store.clear()
        assert store.load() is None

    def test_clear_missing_is_fine(self, store):
        store.clear()


def test_user_id_sanitised(tmp_path):
    store = ProgressStore("../evil/id", tmp_path)
    assert store.path.parent == tmp_path
