"""Configuration handling for grove"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from grove.constants import MAIN_BRANCHES, PROJECT_CONFIG_FILENAME
from grove.exceptions import ValidationError
from grove.logging_config import get_log_dir, get_logger
from grove.models.bootstrap import BootstrapCommand

logger = get_logger(__name__)


@dataclass
class Config:
    """Runtime options for one grove invocation."""

    main_branches: List[str] = field(default_factory=lambda: list(MAIN_BRANCHES))
    verbose: bool = False
    debug: bool = False
    sequential: bool = False  # Complete worktree records one at a time
    workers: Optional[int] = None  # Number of parallel workers (None = auto-detect)

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_main_branches()
        self._validate_workers()

    def _validate_main_branches(self):
        """Validate main_branches is a non-empty list of names."""
        if not isinstance(self.main_branches, list) or not self.main_branches:
            raise ValueError("main_branches must be a non-empty list")
        cleaned = [name.strip() for name in self.main_branches if name and name.strip()]
        if not cleaned:
            raise ValueError("main_branches cannot contain only empty names")
        self.main_branches = cleaned

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    @property
    def effective_workers(self) -> Optional[int]:
        """Worker count for listing; 1 when sequential processing is forced."""
        return 1 if self.sequential else self.workers

    def to_dict(self) -> dict:
        return {
            "main_branches": self.main_branches,
            "verbose": self.verbose,
            "debug": self.debug,
            "sequential": self.sequential,
            "workers": self.workers,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {"main_branches", "verbose", "debug", "sequential", "workers"}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


@dataclass
class ProjectConfig:
    """Per-project settings read from ``<project_root>/.grove.json``.

    Example::

        {"bootstrap": [{"program": "npm", "args": ["install"]}]}
    """

    bootstrap_commands: List[BootstrapCommand] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        """Build a ProjectConfig, validating the bootstrap entries.

        Raises:
            ValidationError: If the structure is not what grove expects.
        """
        if not isinstance(data, dict):
            raise ValidationError("Project config must be a JSON object")

        entries = data.get("bootstrap", [])
        if not isinstance(entries, list):
            raise ValidationError("'bootstrap' must be a list of commands")

        commands = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ValidationError(f"bootstrap[{index}] must be an object with 'program' and 'args'")
            program = entry.get("program", "")
            args = entry.get("args", [])
            if not isinstance(program, str):
                raise ValidationError(f"bootstrap[{index}].program must be a string")
            if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
                raise ValidationError(f"bootstrap[{index}].args must be a list of strings")
            # Blank programs are kept; the runner reports them as failures
            commands.append(BootstrapCommand(program=program, args=tuple(args)))

        return cls(bootstrap_commands=commands)

    @classmethod
    def load(cls, project_root: Union[str, Path]) -> "ProjectConfig":
        """Read the project config file; a missing file means no settings."""
        config_path = Path(project_root) / PROJECT_CONFIG_FILENAME
        if not config_path.is_file():
            logger.debug(f"No project config at {config_path}")
            return cls()

        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {config_path}: {e}") from e
        except OSError as e:
            raise ValidationError(f"Could not read {config_path}: {e}") from e

        config = cls.from_dict(data)
        logger.debug(f"Loaded {len(config.bootstrap_commands)} bootstrap command(s) from {config_path}")
        return config


def get_config_path() -> Path:
    """Location of the user preference file (~/.config/grove/config.json)."""
    return get_log_dir() / "config.json"


@dataclass
class UserPreferences:
    """User-level preferences persisted between sessions."""

    shell_tip_shown: Optional[bool] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "UserPreferences":
        """Read preferences; unreadable or malformed files give defaults."""
        path = path or get_config_path()
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            return cls()
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Ignoring unreadable preferences at {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            return cls()
        value = data.get("shellTipShown")
        return cls(shell_tip_shown=value if isinstance(value, bool) else None)

    def to_dict(self) -> dict:
        data = {}
        if self.shell_tip_shown is not None:
            data["shellTipShown"] = self.shell_tip_shown
        return data

    def save(self, path: Optional[Path] = None) -> None:
        """Write preferences; failures are logged, never raised."""
        path = path or get_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2))
        except OSError as e:
            logger.warning(f"Could not save preferences to {path}: {e}")

    def should_show_shell_tip(self) -> bool:
        return self.shell_tip_shown is not True

    def mark_shell_tip_shown(self, path: Optional[Path] = None) -> None:
        self.shell_tip_shown = True
        self.save(path)
