"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidSchedule
from .domain.models import ProfessionalStatus
from .domain.schedule import Professional, ScheduleSpec
from .domain.slots import DEFAULT_INTERVAL_MINUTES

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DefaultsConfig(BaseModel):
    """Default settings for availability queries."""
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    lookahead_weeks: int = 4

    @field_validator("interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure slot interval is positive."""
        if value <= 0:
            raise ValueError("interval_minutes must be greater than zero")
        return value

    @field_validator("lookahead_weeks")
    @classmethod
    def validate_lookahead(cls, value: int) -> int:
        """Ensure the lookahead bound is positive."""
        if value <= 0:
            raise ValueError("lookahead_weeks must be greater than zero")
        return value


class ProfessionalConfig(BaseModel):
    """Professional entry with its raw weekly schedule."""
    id: int
    name: str
    status: ProfessionalStatus = ProfessionalStatus.AVAILABLE
    schedule: Optional[Dict[str, Any]] = None

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Reject malformed schedules at load time."""
        try:
            ScheduleSpec.from_raw(value)
        except InvalidSchedule as exc:
            raise ValueError(str(exc)) from exc
        return value

    def to_domain(self) -> Professional:
        return Professional(
            id=self.id,
            name=self.name,
            status=self.status,
            schedule=ScheduleSpec.from_raw(self.schedule),
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    database_url: str = "sqlite:///slotguard.db"
    log_level: str = "INFO"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    professionals: List[ProfessionalConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the process-wide timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    @model_validator(mode="after")
    def validate_unique_professionals(self) -> "AppConfig":
        """Ensure professional ids are unique."""
        seen: set[int] = set()
        for professional in self.professionals:
            if professional.id in seen:
                raise ValueError(f"Duplicate professional id detected: {professional.id}")
            seen.add(professional.id)
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_professional(self, professional_id: int) -> Optional[ProfessionalConfig]:
        for professional in self.professionals:
            if professional.id == professional_id:
                return professional
        return None

    def build_professionals(self) -> List[Professional]:
        return [professional.to_domain() for professional in self.professionals]


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
