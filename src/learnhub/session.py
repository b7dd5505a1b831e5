"""Per-learner session state and the registry that hands it to API handlers."""

from collections.abc import Callable
from datetime import datetime

import structlog

from learnhub.auth.identity import LoginResult, User, build_seed_record, new_record
from learnhub.config import Settings
from learnhub.models.progress import PathDefinition
from learnhub.progress import calendar
from learnhub.progress.ledger import ProgressLedger, RewardRules
from learnhub.storage.progress_store import ProgressStore, StoreError

logger = structlog.get_logger()


class SessionNotFoundError(KeyError):
    """Raised when a user id has no active session."""


class LearnerSession:
    """A logged-in learner and the ledger that owns their progress."""

    def __init__(self, user: User, ledger: ProgressLedger, store: ProgressStore):
        self.user = user
        self.ledger = ledger
        self.store = store

    @property
    def record(self):
        return self.ledger.record

    @classmethod
    def open(
        cls,
        login: LoginResult,
        settings: Settings,
        path_catalog: dict[str, PathDefinition] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "LearnerSession":
        """Load the learner's persisted record, or seed a new one on first login.

        An unreadable record is moved aside and replaced by an empty one; the
        demo seed applies only when nothing was ever saved. An existing record
        is used as is.
        """
        store = ProgressStore(login.user.id, settings.progress_dir)
        today = calendar.today(clock())
        try:
            record = store.load()
            created = record is None
            if created:
                record = build_seed_record(
                    login.seed,
                    today,
                    weekly_goal=settings.weekly_goal,
                    total_lessons=settings.total_lessons,
                )
        except StoreError as e:
            logger.warning("progress_load_failed", user_id=login.user.id, error=str(e))
            store.quarantine()
            record = new_record(
                today, weekly_goal=settings.weekly_goal, total_lessons=settings.total_lessons
            )
            created = True

        ledger = ProgressLedger(
            record,
            store=store,
            clock=clock,
            path_catalog=path_catalog,
            default_path_lessons=settings.default_path_lessons,
            rewards=RewardRules.from_settings(settings),
        )
        if created:
            store.save(record)
        logger.info("session_opened", user_id=login.user.id, new_record=created)
        return cls(login.user, ledger, store)

    def close(self) -> None:
        """End the session and discard the persisted record."""
        self.store.clear()
        logger.info("session_closed", user_id=self.user.id)


class SessionRegistry:
    """Active sessions keyed by user id."""

    def __init__(
        self,
        settings: Settings,
        path_catalog: dict[str, PathDefinition] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self.path_catalog = path_catalog or {}
        self.clock = clock
        self._sessions: dict[str, LearnerSession] = {}

    def open(self, login: LoginResult) -> LearnerSession:
        existing = self._sessions.get(login.user.id)
        if existing is not None:
            return existing
        session = LearnerSession.open(
            login, self.settings, path_catalog=self.path_catalog, clock=self.clock
        )
        self._sessions[login.user.id] = session
        return session

    def get(self, user_id: str) -> LearnerSession:
        try:
            return self._sessions[user_id]
        except KeyError:
            raise SessionNotFoundError(user_id) from None

    def close(self, user_id: str) -> None:
        session = self._sessions.pop(user_id, None)
        if session is None:
            raise SessionNotFoundError(user_id)
        session.close()

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions
