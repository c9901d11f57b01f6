"""Version information for bionet-ping."""

import os

__version__ = "2.0.0"
__version_info__ = (2, 0, 0)

PROGRAM_NAME = "bionet-ping"

# Build info from environment (set by packaging/CI)
BUILD_DATE = os.getenv("APP_BUILD_DATE")
GIT_COMMIT = os.getenv("APP_GIT_COMMIT")


def get_version_info() -> dict:
    """Get detailed version information."""
    return {
        "version": __version__,
        "build_date": BUILD_DATE,
        "git_commit": GIT_COMMIT,
    }


def version_banner() -> str:
    """One-line version string shown by ``--version`` and at startup."""
    info = get_version_info()
    commit = info["git_commit"][:12] if info["git_commit"] else None
    extras = [part for part in (info["build_date"], commit) if part]
    if extras:
        return f"{PROGRAM_NAME} {info['version']} ({', '.join(extras)})"
    return f"{PROGRAM_NAME} {info['version']}"
