"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
        if 'progress' in data:
            progress = data['progress']
            flattened['weekly_goal'] = progress.get('weekly_goal')
            flattened['total_lessons'] = progress.get('total_lessons')
            flattened['default_path_lessons'] = progress.get('default_path_lessons')
        if 'rewards' in data:
            rewards = data['rewards']
            flattened['lesson_xp'] = rewards.get('lesson_xp')
            flattened['lesson_hours'] = rewards.get('lesson_hours')
            flattened['quiz_xp_per_point'] = rewards.get('quiz_xp_per_point')
            flattened['study_xp_per_hour'] = rewards.get('study_xp_per_hour')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Authentication (optional: None disables auth)
    app_secret: str | None = Field(default=None)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Progress defaults for a freshly created record
    weekly_goal: int = Field(default=5, gt=0)
    total_lessons: int = Field(default=100, gt=0)
    default_path_lessons: int = Field(default=12, gt=0)

    # Rewards
    lesson_xp: int = Field(default=25, ge=0)
    lesson_hours: float = Field(default=0.5, ge=0)
    quiz_xp_per_point: int = Field(default=10, ge=0)
    study_xp_per_hour: int = Field(default=20, ge=0)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)
    data_dir: Path | None = Field(default=None)

    @property
    def progress_dir(self) -> Path:
        base = self.data_dir if self.data_dir is not None else self.project_root / "data"
        d = Path(base) / "progress"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def config_dir(self) -> Path:
        return self.project_root / "config"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_learning_paths() -> dict[str, dict]:
    """Load the learning path catalog keyed by path id."""
    paths_path = _find_project_root() / "config" / "learning_paths.yaml"
    if not paths_path.exists():
        raise FileNotFoundError(f"Learning paths file not found: {paths_path}")
    with open(paths_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get('paths', {})


def load_demo_accounts() -> list[dict]:
    """Load demo login accounts and their progress seeds from YAML file."""
    accounts_path = _find_project_root() / "config" / "demo_accounts.yaml"
    if not accounts_path.exists():
        raise FileNotFoundError(f"Demo accounts file not found: {accounts_path}")
    with open(accounts_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get('accounts', [])
