"""Unit tests for user identity resolution."""

from unittest.mock import MagicMock, patch

import pytest
from protectsync.core.errors import IdentityError, ValidationError
from protectsync.core.identity import IdentityResolver
from protectsync.utils.shell import CommandResult


def _no_passwd() -> MagicMock:
    return MagicMock(side_effect=KeyError("uid"))


class TestCurrentUser:
    """Tests for IdentityResolver.current_user."""

    @patch("protectsync.core.identity.pwd.getpwuid")
    def test_password_database_first(self, mock_getpwuid: MagicMock) -> None:
        """The passwd entry for the euid wins over the environment."""
        mock_getpwuid.return_value = MagicMock(pw_name="alice")
        resolver = IdentityResolver(environ={"USER": "mallory"}, geteuid=lambda: 1000)

        assert resolver.current_user() == "alice"
        mock_getpwuid.assert_called_once_with(1000)

    def test_falls_back_to_user(self) -> None:
        """USER is used when the uid has no passwd entry."""
        with patch("protectsync.core.identity.pwd.getpwuid", _no_passwd()):
            resolver = IdentityResolver(environ={"USER": "bob", "LOGNAME": "x"})
            assert resolver.current_user() == "bob"

    def test_falls_back_to_logname(self) -> None:
        """LOGNAME is used when USER is empty."""
        with patch("protectsync.core.identity.pwd.getpwuid", _no_passwd()):
            resolver = IdentityResolver(environ={"USER": "  ", "LOGNAME": "carol"})
            assert resolver.current_user() == "carol"

    def test_falls_back_to_whoami(self) -> None:
        """whoami is the last resort."""
        runner = MagicMock(return_value=CommandResult("dave\n", "", 0))
        with patch("protectsync.core.identity.pwd.getpwuid", _no_passwd()):
            resolver = IdentityResolver(environ={}, runner=runner)
            assert resolver.current_user() == "dave"
        assert runner.call_args.args[0] == ["whoami"]

    def test_all_strategies_fail(self) -> None:
        """IdentityError when nothing yields a name."""
        runner = MagicMock(return_value=CommandResult("", "err", 1))
        with patch("protectsync.core.identity.pwd.getpwuid", _no_passwd()):
            resolver = IdentityResolver(environ={}, runner=runner)
            with pytest.raises(IdentityError):
                resolver.current_user()

    def test_whoami_missing(self) -> None:
        """A missing whoami binary becomes IdentityError."""
        runner = MagicMock(side_effect=FileNotFoundError("whoami"))
        with patch("protectsync.core.identity.pwd.getpwuid", _no_passwd()):
            resolver = IdentityResolver(environ={}, runner=runner)
            with pytest.raises(IdentityError, match="Cannot determine"):
                resolver.current_user()


class TestRealUser:
    """Tests for real_user and validated_real_user."""

    def test_prefers_sudo_user(self) -> None:
        """SUDO_USER names the original user."""
        resolver = IdentityResolver(environ={"SUDO_USER": "erin", "USER": "root"})

        assert resolver.real_user() == "erin"

    @patch("protectsync.core.identity.pwd.getpwuid")
    def test_without_sudo_uses_current_user(self, mock_getpwuid: MagicMock) -> None:
        """Without SUDO_USER the current user is the real user."""
        mock_getpwuid.return_value = MagicMock(pw_name="frank")

        assert IdentityResolver(environ={}).real_user() == "frank"

    @patch("protectsync.core.identity.pwd.getpwuid")
    def test_validated_rejects_root(self, mock_getpwuid: MagicMock) -> None:
        """Running as root without sudo is refused."""
        mock_getpwuid.return_value = MagicMock(pw_name="root")

        with pytest.raises(IdentityError, match="root"):
            IdentityResolver(environ={}).validated_real_user()

    def test_validated_accepts_regular_user(self) -> None:
        """A regular SUDO_USER passes validation."""
        resolver = IdentityResolver(environ={"SUDO_USER": "grace"})

        assert resolver.validated_real_user() == "grace"


class TestRequireSudoUser:
    """Tests for require_sudo_user."""

    def test_missing(self) -> None:
        """The privileged side needs SUDO_USER."""
        with pytest.raises(IdentityError, match="SUDO_USER"):
            IdentityResolver(environ={"USER": "root"}).require_sudo_user()

    def test_root(self) -> None:
        """SUDO_USER=root is refused."""
        with pytest.raises(IdentityError):
            IdentityResolver(environ={"SUDO_USER": "root"}).require_sudo_user()

    def test_identity_error_is_validation_error(self) -> None:
        """Identity failures are a kind of validation failure."""
        with pytest.raises(ValidationError):
            IdentityResolver(environ={}).require_sudo_user()

    def test_returns_user(self) -> None:
        """A non-root SUDO_USER is returned trimmed."""
        assert IdentityResolver(environ={"SUDO_USER": " heidi "}).require_sudo_user() == "heidi"
