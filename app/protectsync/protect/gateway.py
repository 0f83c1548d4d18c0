"""The privilege boundary between the checkout owner and protected content.

Two layers use the same :class:`SyncValidator`:

* :class:`PrivilegeGateway` runs unprivileged. It validates the staging
  directory, destination and relative paths, then invokes the root-owned
  helper through ``sudo -n``.
* The helper (``protectsync-helper``) runs as root. It validates the same
  arguments again from scratch and only then lets :class:`PrivilegedSync`
  rsync the staging content into the working tree, owned by the protection
  identity.

The privileged side performs exactly one operation shape and never mutates
the staging directory, so the unprivileged caller can always delete it.
"""

from __future__ import annotations

import logging
import os
import pwd
import re
import shutil
import stat
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from protectsync.core.errors import SyncExecutionError, ValidationError
from protectsync.core.paths import (
    HELPER_PATH,
    MOUNT_ROOT,
    PROTECTION_GROUP,
    PROTECTION_USER,
    RESERVED_PREFIXES,
    STAGE_PREFIX,
    STAGE_ROOT,
    STAGE_SUFFIX_PATTERN,
)
from protectsync.utils.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)

# Directories traversable, executables kept executable, nothing else +x
PERMISSION_MODE = "u=rwX,go=rX"


@dataclass(frozen=True, slots=True)
class SyncOperation:
    """A fully validated sync request.

    Attributes:
        source: Canonical staging directory.
        destination: Canonical working tree root.
        relative_paths: Protected paths to mirror, none nested in another.
    """

    source: Path
    destination: Path
    relative_paths: tuple[str, ...]


def _canonicalize(raw: str | os.PathLike[str], what: str) -> Path:
    """Absolute, normalized path that contains no symlinked component.

    Raises:
        ValidationError: If the path is empty or resolves elsewhere.
    """
    text = os.fspath(raw)
    if not text or "\0" in text:
        raise ValidationError(f"{what} path is required")
    absolute = os.path.abspath(os.path.normpath(text))
    if os.path.realpath(absolute) != absolute:
        raise ValidationError(f"{what} {absolute} must not pass through symlinks")
    return Path(absolute)


def _is_real_dir(path: Path) -> bool:
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return False
    return stat.S_ISDIR(st.st_mode)


def _check_ancestors(base: Path, relative: str, what: str) -> None:
    """Ensure every existing directory between ``base`` and ``relative`` is real.

    Raises:
        ValidationError: If an ancestor is a symlink or not a directory.
    """
    current = base
    for part in relative.split("/")[:-1]:
        current = current / part
        try:
            st = os.lstat(current)
        except FileNotFoundError:
            return
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"{what} ancestor {current} must be a real directory")


class SyncValidator:
    """Structural, location and ownership checks for a sync request.

    The privileged helper constructs this with the module defaults only;
    the parameters exist so tests can point it at a scratch tree.

    Args:
        real_user: The non-privileged user that must own the staging
            directory and the destination's parent.
        stage_root: Directory staging directories are created in.
        mount_root: Directory every destination must live under.
        reserved_prefixes: Prefixes a destination may never start with.
    """

    def __init__(
        self,
        real_user: str,
        *,
        stage_root: Path = STAGE_ROOT,
        mount_root: Path = MOUNT_ROOT,
        reserved_prefixes: Sequence[str] = RESERVED_PREFIXES,
    ) -> None:
        self._real_user = real_user
        self._mount_root = Path(os.path.normpath(mount_root))
        self._reserved_prefixes = tuple(reserved_prefixes)
        root = os.path.normpath(stage_root).rstrip("/")
        self._stage_pattern = re.compile(
            "^" + re.escape(root) + "/" + re.escape(STAGE_PREFIX) + STAGE_SUFFIX_PATTERN + "$"
        )

    @property
    def real_user(self) -> str:
        """User the checked paths must belong to."""
        return self._real_user

    def _owner_of(self, path: Path) -> str:
        try:
            uid = os.lstat(path).st_uid
        except OSError as e:
            raise ValidationError(f"Cannot determine ownership of {path}: {e}") from e
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError as e:
            raise ValidationError(f"Cannot look up user for uid {uid} owning {path}") from e

    def _require_owner(self, path: Path, what: str) -> None:
        owner = self._owner_of(path)
        if owner != self._real_user:
            raise ValidationError(
                f"{what} {path} must be owned by {self._real_user}, but is owned by {owner}"
            )

    def validate_source(self, source: str | os.PathLike[str]) -> Path:
        """Validate a staging directory.

        It must match ``<stage root>/<prefix><random suffix>``, be a real
        directory and belong to the real user.

        Raises:
            ValidationError: On any failed check.
        """
        path = _canonicalize(source, "Source")
        if not self._stage_pattern.match(str(path)):
            raise ValidationError(f"Invalid source directory pattern: {path}")

        try:
            st = os.lstat(path)
        except OSError as e:
            raise ValidationError(f"Cannot access source directory {path}: {e}") from e
        if stat.S_ISLNK(st.st_mode):
            raise ValidationError(f"Source {path} must be a real directory, not a symlink")
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"Source {path} must be a directory")

        self._require_owner(path, "Source")
        return path

    def validate_destination(self, destination: str | os.PathLike[str]) -> Path:
        """Validate a working tree root.

        Location checks run before the filesystem is consulted at all.

        Raises:
            ValidationError: On any failed check.
        """
        path = _canonicalize(destination, "Destination")
        text = str(path) + "/"

        for prefix in self._reserved_prefixes:
            if text.startswith(prefix):
                raise ValidationError(f"Cannot sync to system directory {path}")

        if path == self._mount_root or not path.is_relative_to(self._mount_root):
            raise ValidationError(f"Destination {path} must be under {self._mount_root}")

        try:
            st = os.lstat(path)
        except OSError as e:
            raise ValidationError(f"Cannot access destination directory {path}: {e}") from e
        if stat.S_ISLNK(st.st_mode):
            raise ValidationError(f"Destination {path} must be a real directory, not a symlink")
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"Destination {path} must be a directory")

        # .git is a directory in a plain clone and a file in a worktree
        try:
            git_st = os.lstat(path / ".git")
        except OSError as e:
            raise ValidationError(f"Destination {path} is not a git working tree root") from e
        if not (stat.S_ISDIR(git_st.st_mode) or stat.S_ISREG(git_st.st_mode)):
            raise ValidationError(f"Destination {path} has an unexpected .git entry")

        self._require_owner(path.parent, "Destination parent")
        return path

    def validate_relative_paths(
        self,
        source: Path,
        destination: Path,
        relative_paths: Sequence[str],
    ) -> tuple[str, ...]:
        """Validate the protected paths to mirror.

        Each must be a normalized relative path without ``.git`` segments,
        and no existing ancestor on either side may be a symlink.

        Raises:
            ValidationError: On any failed check.
        """
        if not relative_paths:
            raise ValidationError("At least one protected path is required")

        validated: list[str] = []
        for relative in relative_paths:
            if not relative or "\0" in relative or relative.startswith("/"):
                raise ValidationError(f"Invalid protected path: {relative!r}")
            parts = relative.split("/")
            if any(part in ("", ".", "..") for part in parts):
                raise ValidationError(f"Protected path must be normalized: {relative!r}")
            if ".git" in parts:
                raise ValidationError(f"Protected path may not touch .git: {relative!r}")
            _check_ancestors(source, relative, "Source")
            _check_ancestors(destination, relative, "Destination")
            validated.append(relative)

        ordered = sorted(set(validated))
        for relative in ordered:
            if any(relative.startswith(other + "/") for other in ordered):
                raise ValidationError(f"Protected path {relative!r} is nested in another")
        return tuple(ordered)

    def validate(
        self,
        source: str | os.PathLike[str],
        destination: str | os.PathLike[str],
        relative_paths: Sequence[str],
    ) -> SyncOperation:
        """Run every check and return the validated operation.

        Raises:
            ValidationError: On the first failed check.
        """
        source_path = self.validate_source(source)
        destination_path = self.validate_destination(destination)
        paths = self.validate_relative_paths(source_path, destination_path, relative_paths)
        return SyncOperation(source_path, destination_path, paths)


class PrivilegedSync:
    """Mirrors a validated staging directory into a working tree.

    Must run as root: it hands every written entry to the protection
    identity. Entries are never followed through symlinks; a symlink in
    the staging directory is copied as a link, and a symlink in the way
    in the working tree is removed first.

    Args:
        runner: Command runner used to spawn rsync.
        owner: ``user:group`` given to synced entries.
    """

    def __init__(
        self,
        runner: CommandRunner = run_command,
        owner: str = f"{PROTECTION_USER}:{PROTECTION_GROUP}",
    ) -> None:
        self._runner = runner
        self._owner = owner

    def rsync_args(self, source: Path, destination: Path, *, directory: bool) -> list[str]:
        """Build the rsync invocation for one protected path."""
        args = [
            "rsync",
            "--recursive",
            "--links",
            "--checksum",
            "--perms",
            f"--chmod={PERMISSION_MODE}",
            "--owner",
            "--group",
            f"--chown={self._owner}",
            "--omit-dir-times",
            "--delete",
            "--no-specials",
            "--no-devices",
            "--safe-links",
            "--exclude=.git",
        ]
        if directory:
            args += [f"{source}/", f"{destination}/"]
        else:
            args += [str(source), str(destination)]
        return args

    def execute(self, operation: SyncOperation) -> None:
        """Mirror each protected path of ``operation``.

        Raises:
            ValidationError: If an ancestor turned into a symlink after
                validation.
            SyncExecutionError: If removing an entry or rsync fails. Paths
                processed earlier stay updated.
        """
        for relative in operation.relative_paths:
            self._sync_path(operation, relative)

    def _sync_path(self, operation: SyncOperation, relative: str) -> None:
        # Re-check right before acting; the tree may have changed since
        _check_ancestors(operation.source, relative, "Source")
        _check_ancestors(operation.destination, relative, "Destination")

        src = operation.source / relative
        dst = operation.destination / relative

        if not os.path.lexists(src):
            if os.path.lexists(dst):
                logger.info("Removing %s (absent from HEAD)", relative)
                _remove(dst)
            return

        directory = _is_real_dir(src)
        if os.path.lexists(dst) and _is_real_dir(dst) != directory:
            _remove(dst)
        elif os.path.islink(dst):
            _remove(dst)

        if not _is_real_dir(dst.parent):
            raise SyncExecutionError(f"Parent directory of {dst} does not exist")

        logger.info("Syncing %s", relative)
        try:
            result = self._runner(self.rsync_args(src, dst, directory=directory), timeout=None)
        except OSError as e:
            raise SyncExecutionError(f"Cannot run rsync for {relative}: {e}") from e
        if not result.success:
            raise SyncExecutionError(
                f"rsync failed for {relative} (exit {result.returncode}): "
                f"{result.stderr.strip()}"
            )


def _remove(path: Path) -> None:
    try:
        if _is_real_dir(path):
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        raise SyncExecutionError(f"Cannot remove {path}: {e}") from e


class PrivilegeGateway:
    """Unprivileged entry point to the privileged sync.

    Validates the request locally, then runs the root-owned helper through
    ``sudo -n``. The helper repeats all validation on its side.

    Args:
        validator: Validator bound to the invoking user.
        runner: Command runner used to spawn sudo.
        helper_path: Location of the privileged helper.
        sudo: sudo executable.
    """

    def __init__(
        self,
        validator: SyncValidator,
        runner: CommandRunner = run_command,
        helper_path: Path = HELPER_PATH,
        sudo: str = "sudo",
    ) -> None:
        self._validator = validator
        self._runner = runner
        self._helper_path = helper_path
        self._sudo = sudo

    def sync(
        self,
        source: Path,
        destination: Path,
        relative_paths: Sequence[str],
    ) -> SyncOperation:
        """Mirror ``relative_paths`` from ``source`` into ``destination``.

        Returns:
            The operation that was executed.

        Raises:
            ValidationError: If the request fails local validation; sudo is
                not invoked.
            SyncExecutionError: If the helper cannot be run or reports failure.
        """
        operation = self._validator.validate(source, destination, relative_paths)

        args = [
            self._sudo,
            "-n",
            str(self._helper_path),
            "--",
            f"{operation.source}/",
            f"{operation.destination}/",
            *operation.relative_paths,
        ]
        logger.debug("Crossing privilege boundary: %s", " ".join(args))
        try:
            result = self._runner(args, timeout=None)
        except OSError as e:
            raise SyncExecutionError(f"Cannot run privileged helper: {e}") from e
        if not result.success:
            detail = result.stderr.strip() or result.stdout.strip() or "no output"
            raise SyncExecutionError(
                f"Privileged helper failed (exit {result.returncode}): {detail}"
            )
        return operation
