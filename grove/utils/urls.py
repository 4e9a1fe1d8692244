"""Git URL validation and repository naming."""

import posixpath
import re

from grove.exceptions import InvalidGitUrlError

_GIT_URL_PATTERNS = [
    re.compile(r"^https?://.+/.+$"),
    re.compile(r"^git@[^:]+:.+$"),
    re.compile(r"^ssh://.+/.+$"),
]


def is_valid_git_url(url: str) -> bool:
    """Accept HTTPS, scp-style SSH, and ssh:// URLs."""
    if not url:
        return False
    return any(pattern.match(url) for pattern in _GIT_URL_PATTERNS)


def extract_repo_name(git_url: str) -> str:
    """Derive the project directory name from a clone URL.

    Raises:
        InvalidGitUrlError: If no usable name can be extracted.
    """
    clean_url = git_url[: -len(".git")] if git_url.endswith(".git") else git_url

    if clean_url.startswith("git@"):
        parts = clean_url.split(":")
        if len(parts) < 2:
            raise InvalidGitUrlError(f"Invalid SSH URL format: {git_url}")
        url_path = parts[-1]
    else:
        url_path = clean_url

    repo_name = posixpath.basename(url_path.rstrip("/"))
    if repo_name in ("", ".", ".."):
        raise InvalidGitUrlError(f"Could not extract valid repository name from: {git_url}")

    return repo_name
