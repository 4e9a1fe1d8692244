"""Custom exceptions for grove"""

from typing import Optional


class GroveError(Exception):
    """Base exception for all grove errors."""
    pass


class DiscoveryError(GroveError):
    """Raised when no grove-managed repository can be located."""

    def __init__(self, message: str, is_regular_git_repo: bool = False):
        self.message = message
        self.is_regular_git_repo = is_regular_git_repo
        super().__init__(message)


class ValidationError(GroveError):
    """Raised for malformed user input, before any git command is issued."""
    pass


class PathValidationError(ValidationError):
    """Raised when a branch or worktree name would escape the project root."""
    pass


class DurationParseError(ValidationError):
    """Raised for duration strings that cannot be turned into a threshold."""
    pass


class InvalidGitUrlError(ValidationError):
    """Raised for git URLs that cannot be cloned or named."""
    pass


class GitOperationError(GroveError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, message: Optional[str] = None, branch: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Failed to {operation}"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)
