"""Fixed filesystem locations and identities for protectsync.

The privileged side trusts nothing the unprivileged user can influence, so
the staging root, mount root, reserved prefixes, protection identity and
helper location are plain module constants rather than configuration.
"""

from pathlib import Path

# Dedicated non-login system account that owns protected content
PROTECTION_USER = "protectsync"
PROTECTION_GROUP = "protectsync"

# Staging directories: /tmp/protectsync-stage-<random>
STAGE_ROOT = Path("/tmp")
STAGE_PREFIX = "protectsync-stage-"
STAGE_SUFFIX_PATTERN = r"[A-Za-z0-9_]{8,}"

# Repositories may only live below this mount root
MOUNT_ROOT = Path("/workspaces")

# Never sync into these, whatever the other checks say
RESERVED_PREFIXES: tuple[str, ...] = (
    "/etc/",
    "/usr/",
    "/bin/",
    "/sbin/",
    "/lib/",
    "/boot/",
    "/sys/",
    "/proc/",
    "/dev/",
    "/root/",
    "/var/",
)

# Root-owned privileged helper, referenced by the sudoers rule
HELPER_PATH = Path("/etc/git/hooks/protectsync-helper")

# Lock file name inside the repository's git directory
LOCK_FILENAME = "protect-paths.lock"

# Repository-level configuration file
REPO_CONFIG_FILENAME = ".protectsync.toml"


def get_repo_config_path(repository_root: Path) -> Path:
    """Get the configuration file path for a repository.

    Args:
        repository_root: Top-level directory of the working tree.

    Returns:
        Path to <repository_root>/.protectsync.toml.
    """
    return repository_root / REPO_CONFIG_FILENAME
