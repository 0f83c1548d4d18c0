"""Repository configuration for protectsync.

Configuration lives in ``<repository>/.protectsync.toml`` and carries the two
pattern lists plus lock tuning::

    assignment-regex = '''
    ^assignments/[^/]+$
    '''
    protected-paths-regex = '''
    ^tutorials$
    ^grading$
    '''

    [lock]
    timeout-seconds = 30

A missing file disables both actions. Pattern lists accept either a
newline-separated string or a list of strings.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from protectsync.core.errors import ConfigError
from protectsync.core.paths import get_repo_config_path

logger = logging.getLogger(__name__)


def split_patterns(text: str) -> list[str]:
    """Split a newline-separated pattern list.

    Lines are trimmed, blank lines dropped and duplicates removed while
    preserving first occurrence order.

    Args:
        text: Newline-separated regular expressions.

    Returns:
        List of pattern strings.
    """
    seen: set[str] = set()
    patterns: list[str] = []
    for line in text.splitlines():
        pattern = line.strip()
        if pattern and pattern not in seen:
            seen.add(pattern)
            patterns.append(pattern)
    return patterns


class LockSettings(BaseModel):
    """Tuning for the repository lock.

    Attributes:
        timeout_seconds: How long to wait for another run to finish.
        poll_interval_seconds: Delay between acquisition attempts.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    timeout_seconds: Annotated[
        float,
        Field(alias="timeout-seconds", ge=1, le=600, description="Lock wait (1-600s)"),
    ] = 30.0
    poll_interval_seconds: Annotated[
        float,
        Field(alias="poll-interval-seconds", ge=0.01, le=5, description="Retry delay"),
    ] = 0.1


class ProtectConfig(BaseModel):
    """Validated repository configuration.

    Attributes:
        assignment_patterns: Regexes selecting assignment directories for
            sparse checkout.
        protected_patterns: Regexes selecting protected paths.
        lock: Lock tuning.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    assignment_patterns: Annotated[
        list[str],
        Field(alias="assignment-regex", description="Sparse-checkout patterns"),
    ] = []
    protected_patterns: Annotated[
        list[str],
        Field(alias="protected-paths-regex", description="Protected path patterns"),
    ] = []
    lock: LockSettings = LockSettings()

    @field_validator("assignment_patterns", "protected_patterns", mode="before")
    @classmethod
    def normalize_patterns(cls, v: object) -> list[str]:
        """Accept newline-separated strings or lists of strings."""
        if v is None:
            return []
        if isinstance(v, str):
            return split_patterns(v)
        if isinstance(v, list) and all(isinstance(item, str) for item in v):
            return split_patterns("\n".join(v))
        msg = "must be a newline-separated string or a list of strings"
        raise ValueError(msg)


def load_config(repository_root: Path, path: Path | None = None) -> ProtectConfig:
    """Load repository configuration.

    Args:
        repository_root: Top-level directory of the working tree.
        path: Explicit config file. Defaults to the repository config path.

    Returns:
        Validated ProtectConfig. Defaults when the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_repo_config_path(repository_root)

    if not config_path.exists():
        logger.debug("No configuration at %s, protection disabled", config_path)
        return ProtectConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    try:
        return ProtectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def save_config(config: ProtectConfig, path: Path) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The configuration to save.
        path: Destination file.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f, multiline_strings=True)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config {path}: {e}") from e

    return path


def _config_to_dict(config: ProtectConfig) -> dict[str, object]:
    """Convert ProtectConfig to a TOML-ready dictionary using file key names."""
    result: dict[str, object] = {
        "assignment-regex": "\n".join(config.assignment_patterns) + "\n",
        "protected-paths-regex": "\n".join(config.protected_patterns) + "\n",
    }

    lock = config.lock.model_dump(by_alias=True, exclude_defaults=True)
    if lock:
        result["lock"] = lock

    return result
