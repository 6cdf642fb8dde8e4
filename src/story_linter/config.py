"""Configuration management for Story Linter.

Two layers:
- `Settings`: process-level defaults read from the environment / .env
- `LinterConfig`: per-story options read from `.story-linter.yml` at the root
"""

import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from story_linter.errors import ConfigError
from story_linter.models.diagnostic import Diagnostic, DiagnosticKind, Location, Severity

CONFIG_FILE_NAMES = (".story-linter.yml", ".story-linter.yaml", ".story-linter.json")


class Settings(BaseSettings):
    """Command-line defaults, loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STORY_LINTER_",
        extra="ignore",
    )

    format: Literal["human", "json"] = Field(default="human")
    fail_on: Literal["error", "warning", "never"] = Field(default="error")
    jobs: Optional[int] = Field(default=None, ge=1, description="Overrides `jobs` from the config file")
    no_color: bool = Field(default=False)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class ChronologyCategory(BaseModel):
    """Ordering rules for one family of ordinal markers."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    pattern: str
    monotonic: bool = False
    strict: bool = False

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression: {e}") from e
        if compiled.groups == 0:
            raise ValueError("pattern needs a capture group for the ordinal")
        return value

    def compile(self) -> re.Pattern:
        return re.compile(self.pattern, re.IGNORECASE)


class ValidatorSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = True


class LinterConfig(BaseModel):
    """Options recognized in `.story-linter.yml`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    include: list[str] = Field(default_factory=lambda: ["**/*.md"])
    exclude: list[str] = Field(default_factory=lambda: ["**/.*", "**/.*/**"])
    entry_points: list[str] = Field(default_factory=lambda: ["index"], alias="entry-points")
    known_characters: list[str] = Field(default_factory=list, alias="known-characters")
    aliases: dict[str, list[str]] = Field(default_factory=dict)
    chronology: dict[str, ChronologyCategory] = Field(default_factory=dict)
    validators: dict[str, ValidatorSettings] = Field(default_factory=dict)
    typo_distance: int = Field(default=1, ge=0, alias="typo-distance")
    typo_min_length: int = Field(default=4, ge=1, alias="typo-min-length")
    character_order: bool = Field(default=False, alias="character-order")
    follow_symlinks: bool = Field(default=False, alias="follow-symlinks")
    jobs: int = Field(default=1, ge=1)

    @field_validator("validators", mode="before")
    @classmethod
    def _bool_shorthand(cls, value: Any) -> Any:
        # `link-integrity: false` is shorthand for `link-integrity: {enabled: false}`
        if isinstance(value, dict):
            return {
                name: {"enabled": v} if isinstance(v, bool) else v
                for name, v in value.items()
            }
        return value

    @field_validator("entry_points", "known_characters", "include", "exclude", mode="before")
    @classmethod
    def _single_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    def validator_enabled(self, name: str, default: bool = True) -> bool:
        settings = self.validators.get(name)
        if settings is None:
            return default
        return settings.enabled

    @classmethod
    def recognized_keys(cls) -> set[str]:
        return {f.alias or name for name, f in cls.model_fields.items()}


@dataclass
class LoadedConfig:
    """A validated config plus where its keys came from."""

    config: LinterConfig
    file: Optional[str] = None  # Path relative to the root, None if defaults
    key_lines: dict[str, int] = field(default_factory=dict)  # "validators.foo" -> line
    raw_keys: dict[str, list[str]] = field(default_factory=dict)  # "" / "validators" -> keys

    def line_of(self, key: str) -> int:
        return self.key_lines.get(key, 1)

    def advisory(self, kind: DiagnosticKind, severity: Severity, message: str, key: str = "") -> Diagnostic:
        return Diagnostic(
            kind=kind,
            severity=severity,
            location=Location(self.file or ".", self.line_of(key) if key else 1, 1),
            message=message,
        )

    def unknown_key_advisories(self) -> list[Diagnostic]:
        """Warnings for top-level keys the linter does not recognize."""
        recognized = LinterConfig.recognized_keys()
        return [
            self.advisory(
                DiagnosticKind.UNKNOWN_KEY,
                Severity.WARNING,
                f"Unknown configuration key '{key}'",
                key,
            )
            for key in self.raw_keys.get("", [])
            if key not in recognized
        ]


def find_config_file(root: Path) -> Optional[Path]:
    """Return the first well-known config file present at the root."""
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def _relative_name(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def _yaml_key_lines(text: str) -> dict[str, int]:
    """Map top-level and second-level keys to 1-based line numbers."""
    lines: dict[str, int] = {}
    node = yaml.compose(text, Loader=yaml.SafeLoader)
    if not isinstance(node, yaml.MappingNode):
        return lines
    for key_node, value_node in node.value:
        key = str(key_node.value)
        lines[key] = key_node.start_mark.line + 1
        if isinstance(value_node, yaml.MappingNode):
            for sub_key, _ in value_node.value:
                lines[f"{key}.{sub_key.value}"] = sub_key.start_mark.line + 1
    return lines


def parse_config_text(text: str, name: str) -> tuple[dict, dict[str, int]]:
    """Parse raw config text into a mapping plus key line numbers."""
    try:
        if name.endswith(".json"):
            data = json.loads(text) if text.strip() else {}
            key_lines: dict[str, int] = {}
        else:
            data = yaml.safe_load(text)
            key_lines = _yaml_key_lines(text) if data else {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"Cannot parse configuration: {e.msg}", name, e.lineno, e.colno) from e
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 1 if mark else 1
        column = mark.column + 1 if mark else 1
        raise ConfigError(f"Cannot parse configuration: {e}", name, line, column) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping", name)
    return data, key_lines


def load_config(root: Path, config_path: Optional[Path] = None) -> LoadedConfig:
    """Load the configuration for a story root.

    Args:
        root: Story root directory
        config_path: Explicit config file (overrides discovery)

    Raises:
        ConfigError: The file cannot be read, parsed or validated
    """
    path = config_path if config_path is not None else find_config_file(root)
    if path is None:
        return LoadedConfig(config=LinterConfig())

    name = _relative_name(path, root)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read configuration: {e}", name) from e

    data, key_lines = parse_config_text(text, name)

    try:
        config = LinterConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first["loc"][:2])
        line = key_lines.get(key, key_lines.get(str(first["loc"][0]), 1)) if first["loc"] else 1
        raise ConfigError(
            f"Invalid configuration at '{key}': {first['msg']}", name, line
        ) from e

    raw_keys = {"": [str(k) for k in data]}
    if isinstance(data.get("validators"), dict):
        raw_keys["validators"] = [str(k) for k in data["validators"]]

    return LoadedConfig(config=config, file=name, key_lines=key_lines, raw_keys=raw_keys)
