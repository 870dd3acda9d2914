"""GitHub collector errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub API cannot be reached or returns an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, path: str) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(
            f"GitHub REST HTTP {status_code} for {path}", status_code=status_code
        )

    @classmethod
    def transport_error(cls, path: str, exc: BaseException) -> GitHubAPIError:
        """Return an error for connection or protocol failures."""
        return cls(f"GitHub REST request failed for {path}: {exc}")


class GitHubResponseShapeError(GitHubAPIError):
    """Raised when GitHub REST responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing or mistyped response field."""
        return cls(f"GitHub REST response missing expected field: {field}")


class SafetyLimitExceededError(GitHubAPIError):
    """Raised when a paginated listing runs past its page cap."""

    def __init__(self, path: str, max_pages: int) -> None:
        """Record the listing path and the cap that was exceeded."""
        self.path = path
        self.max_pages = max_pages
        super().__init__(f"Pagination for {path} exceeded {max_pages} pages")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("GITHUB_AUTH_TOKEN is required for GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")
