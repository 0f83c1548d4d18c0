"""Current and original user detection.

Resolves who is running protectsync and, under sudo, who invoked it. All
lookups go through :class:`IdentityResolver` so the fallback order and the
superuser guard live in one place.
"""

import logging
import os
import pwd
from collections.abc import Callable, Mapping

from protectsync.core.errors import IdentityError
from protectsync.utils.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)

SUPERUSER = "root"


class IdentityResolver:
    """Resolves the current user and the original pre-sudo user.

    Args:
        environ: Environment mapping to consult. Defaults to ``os.environ``.
        runner: Command runner used for the ``whoami`` fallback.
        geteuid: Function returning the effective uid.
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        runner: CommandRunner = run_command,
        geteuid: Callable[[], int] = os.geteuid,
    ) -> None:
        self._environ = environ if environ is not None else os.environ
        self._runner = runner
        self._geteuid = geteuid

    def current_user(self) -> str:
        """Determine the current user name.

        Tries, in order: the password database entry for the effective uid,
        ``USER``, ``LOGNAME`` and finally the ``whoami`` command.

        Returns:
            The user name.

        Raises:
            IdentityError: If every strategy fails.
        """
        try:
            name = pwd.getpwuid(self._geteuid()).pw_name
            if name:
                return name
        except KeyError:
            logger.debug("No passwd entry for euid %d", self._geteuid())

        for var in ("USER", "LOGNAME"):
            value = self._environ.get(var, "").strip()
            if value:
                return value

        try:
            result = self._runner(["whoami"], timeout=10.0)
        except OSError as e:
            raise IdentityError(f"Cannot determine current user: {e}") from e
        name = result.stdout.strip()
        if result.success and name:
            return name

        raise IdentityError("Cannot determine current user")

    def real_user(self) -> str:
        """Get the original user, preferring ``SUDO_USER`` when set.

        Returns:
            The pre-escalation user name.
        """
        sudo_user = self._environ.get("SUDO_USER", "").strip()
        if sudo_user:
            return sudo_user
        return self.current_user()

    def validated_real_user(self) -> str:
        """Get the original user and refuse the superuser.

        Raises:
            IdentityError: If the user is root or cannot be determined.
        """
        user = self.real_user()
        _reject_superuser(user)
        return user

    def require_sudo_user(self) -> str:
        """Get ``SUDO_USER`` for code running on the privileged side.

        Raises:
            IdentityError: If ``SUDO_USER`` is unset or is root.
        """
        sudo_user = self._environ.get("SUDO_USER", "").strip()
        if not sudo_user:
            raise IdentityError(
                "SUDO_USER environment variable is not set - cannot determine original user"
            )
        _reject_superuser(sudo_user)
        return sudo_user


def _reject_superuser(user: str) -> None:
    if user == SUPERUSER:
        raise IdentityError(f"Refusing to operate as {SUPERUSER} user")
