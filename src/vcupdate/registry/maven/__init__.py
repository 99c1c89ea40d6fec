"""Maven-layout repository client."""

from .client import Repository, RepositoryClient, default_repositories

__all__ = ["Repository", "RepositoryClient", "default_repositories"]
