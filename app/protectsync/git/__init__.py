"""Git plumbing access for protectsync."""

from protectsync.git.repository import GitRepository

__all__ = ["GitRepository"]
