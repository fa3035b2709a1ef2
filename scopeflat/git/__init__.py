"""Version-control collaborators."""

from .vcs import Git

__all__ = ["Git"]
