"""protectsync - keep instructor-controlled paths pinned to HEAD.

Git hook tooling that restores protected paths from the HEAD commit after
every working-tree-changing git operation, hands them to a dedicated
protection identity, and hides them from ``git status``.
"""

__version__ = "0.3.0"
