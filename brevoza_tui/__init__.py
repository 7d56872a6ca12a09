"""Terminal CMS for structured content stored in a GitHub repository."""

from .version import __version__
