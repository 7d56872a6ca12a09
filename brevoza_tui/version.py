"""Version and project links for brevoza-tui."""

try:
    from ._version import version as __version__
except ImportError:
    # Written by setuptools-scm at build time; absent in a bare checkout
    __version__ = "0.0.0.dev0"

PROJECT_URL = "https://github.com/brevoza/brevoza-tui"


def get_version() -> str:
    return __version__


def get_release_url() -> str:
    """Release page for the running version, without any local suffix."""
    public_version = __version__.split("+", 1)[0]
    return f"{PROJECT_URL}/releases/tag/v{public_version}"
