"""Cross-process lock scoped to one repository.

Only one protection run may touch a repository at a time. The lock is a
file created with ``O_CREAT | O_EXCL`` inside the git directory holding the
owner's pid; a lock whose owner is gone is reclaimed. Reclaimers serialize
on an ``flock`` over a sibling ``.reclaim`` file and re-check the lock under
it, so a reclaim never deletes a lock another process has just taken.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from protectsync.core.errors import GitCommandError, LockReleaseError, LockTimeoutError
from protectsync.core.paths import LOCK_FILENAME
from protectsync.git.repository import GitRepository

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.1
RECLAIM_SUFFIX = ".reclaim"


def is_process_alive(pid: int) -> bool:
    """Probe a process with signal 0.

    Anything other than a definite "no such process" counts as alive so
    a lock is never stolen from a holder we merely cannot signal.

    Args:
        pid: Process id to probe.

    Returns:
        False only when the process certainly does not exist.
    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError as e:
        logger.debug("Liveness probe for pid %d inconclusive: %s", pid, e)
        return True
    return True


def read_lock_pid(lock_path: Path) -> int | None:
    """Read the pid recorded in a lock file.

    Returns:
        The pid, or None when the file is missing, empty or garbled.
    """
    try:
        content = lock_path.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError):
        return None
    try:
        return int(content)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class Lock:
    """A held repository lock.

    Attributes:
        path: Lock file location.
        pid: Process id written into the file.
    """

    path: Path
    pid: int


class LockManager:
    """Acquires and releases the per-repository protection lock.

    Args:
        timeout: Seconds to keep retrying before giving up.
        poll_interval: Seconds to sleep between attempts.
        process_alive: Liveness probe for recorded pids.
        clock: Monotonic clock.
        sleep: Sleep function.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        *,
        process_alive: Callable[[int], bool] = is_process_alive,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._process_alive = process_alive
        self._clock = clock
        self._sleep = sleep

    def lock_path(self, repository: GitRepository) -> Path:
        """Location of the lock file for ``repository``.

        Raises:
            LockTimeoutError: If the git directory cannot be resolved.
        """
        try:
            return repository.git_dir() / LOCK_FILENAME
        except GitCommandError as e:
            raise LockTimeoutError(f"Failed to find git directory: {e}") from e

    def acquire(self, repository: GitRepository) -> Lock:
        """Take the lock, waiting for a live holder up to the timeout.

        Args:
            repository: Repository whose git directory holds the lock.

        Returns:
            The held Lock.

        Raises:
            LockTimeoutError: If the lock stays held past the timeout or
                the lock file cannot be created.
        """
        lock_path = self.lock_path(repository)
        pid = os.getpid()
        deadline = self._clock() + self._timeout

        while True:
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                if self._lock_is_stale(lock_path):
                    self._reclaim(lock_path)
                    continue
            except OSError as e:
                raise LockTimeoutError(f"Cannot create lock file {lock_path}: {e}") from e
            else:
                try:
                    os.write(fd, f"{pid}\n".encode("ascii"))
                except OSError as e:
                    os.close(fd)
                    lock_path.unlink(missing_ok=True)
                    raise LockTimeoutError(f"Failed to write pid to {lock_path}: {e}") from e
                os.close(fd)
                logger.debug("Acquired %s", lock_path)
                return Lock(path=lock_path, pid=pid)

            if self._clock() >= deadline:
                raise LockTimeoutError(
                    f"Timeout waiting for {lock_path} "
                    "(another protection run may be in progress)"
                )
            self._sleep(self._poll_interval)

    def _lock_is_stale(self, lock_path: Path) -> bool:
        holder = read_lock_pid(lock_path)
        return holder is not None and not self._process_alive(holder)

    def _reclaim(self, lock_path: Path) -> None:
        """Remove ``lock_path`` if it still belongs to a dead process.

        Staleness is checked again under the reclaim guard, since another
        waiter may have reclaimed and retaken the lock after our first look.
        Only a reclaimer holding the guard ever deletes a lock it does not
        own, so the file cannot change hands between that check and the
        unlink. The guard file is left in place for later reclaimers.

        Raises:
            LockTimeoutError: If the reclaim guard cannot be taken.
        """
        guard_path = lock_path.with_name(lock_path.name + RECLAIM_SUFFIX)
        try:
            guard = os.open(guard_path, os.O_CREAT | os.O_WRONLY, 0o600)
        except OSError as e:
            raise LockTimeoutError(f"Cannot open reclaim guard {guard_path}: {e}") from e
        try:
            fcntl.flock(guard, fcntl.LOCK_EX)
            holder = read_lock_pid(lock_path)
            if holder is None or self._process_alive(holder):
                logger.debug("Lock %s changed hands before reclaim", lock_path)
                return
            logger.info("Removing stale lock held by dead process %d", holder)
            lock_path.unlink(missing_ok=True)
        except OSError as e:
            raise LockTimeoutError(f"Failed to reclaim stale lock {lock_path}: {e}") from e
        finally:
            # closing drops the flock
            os.close(guard)

    def release(self, lock: Lock) -> None:
        """Remove the lock file.

        Raises:
            LockReleaseError: If the file cannot be removed.
        """
        try:
            lock.path.unlink()
        except OSError as e:
            if e.errno == errno.ENOENT:
                logger.warning("Lock %s already removed", lock.path)
                return
            raise LockReleaseError(f"Failed to remove lock {lock.path}: {e}") from e
        logger.debug("Released %s", lock.path)

    @contextmanager
    def hold(self, repository: GitRepository) -> Iterator[Lock]:
        """Hold the lock for the duration of a ``with`` block.

        Release failures are logged, not raised, so they never mask the
        block's own outcome.
        """
        lock = self.acquire(repository)
        try:
            yield lock
        finally:
            try:
                self.release(lock)
            except LockReleaseError as e:
                logger.error("%s", e)
