"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.week_grid import GridLayout, TimeAxis


class GridConfig(BaseModel):
    """Time axis and pixel settings of the week grid."""
    start_hour: int = 7
    end_hour: int = 18
    step_minutes: int = 30
    cell_height_px: int = 64
    gap_px: int = 4
    max_visible_slots: int = 3
    slot_offset_px: int = 8

    @field_validator("start_hour", "end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("step_minutes")
    @classmethod
    def validate_step(cls, value: int) -> int:
        """The step must split an hour into whole cells."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"step_minutes must divide 60 evenly, got {value}")
        return value

    @field_validator("max_visible_slots")
    @classmethod
    def validate_max_visible(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_visible_slots must be at least 1")
        return value

    @field_validator("cell_height_px", "gap_px", "slot_offset_px")
    @classmethod
    def validate_pixels(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Pixel sizes cannot be negative, got {value}")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "GridConfig":
        """Ensure the axis does not end before it starts."""
        if self.end_hour < self.start_hour:
            raise ValueError("end_hour must not be earlier than start_hour")
        return self

    def time_axis(self) -> TimeAxis:
        return TimeAxis(
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            step_minutes=self.step_minutes,
        )

    def layout(self) -> GridLayout:
        return GridLayout(
            cell_height_px=self.cell_height_px,
            gap_px=self.gap_px,
            max_visible=self.max_visible_slots,
            offset_step_px=self.slot_offset_px,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    data_file: Path = Path("timetable.json")
    grid: GridConfig = Field(default_factory=GridConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject timezone names pendulum does not know."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

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

        config = cls(**data)

        # Relative data paths are resolved against the config file's directory
        if not config.data_file.is_absolute():
            config = config.model_copy(update={"data_file": config_path.parent / config.data_file})

        return config

    @classmethod
    def load_or_default(cls, config_path: Optional[Path]) -> "AppConfig":
        """
        Load an explicitly given config, or the default one if it exists.

        An explicit path that does not exist is an error; a missing default
        config silently yields the built-in defaults.
        """
        if config_path is not None:
            return cls.load_from_yaml(config_path)

        default_path = get_default_config_path()
        if default_path.exists():
            return cls.load_from_yaml(default_path)
        return cls()


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
