"""Version control integration for commitsmith."""

from .git_client import GitClient, GitError, GitLockError, RepoStatus  # noqa: F401
