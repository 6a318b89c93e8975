"""
Exception classes for spot-cli.

Every failure that reaches the command boundary is one of these classes.
Each class carries the process exit code the CLI maps it to, so commands
never pick exit codes themselves.

Exception Hierarchy:
    SpotCliError (base)
        UserInputError - Bad argument, missing selection, unknown URI (exit 1)
        NotFoundError - No cached results, no match (exit 1)
        ReadOnlyTargetError - Playlist chosen for write is not writable (exit 1)
        DecodeError - Truncated or malformed JSON (exit 1)
        ConfigError - Invalid configuration (exit 1)
        AuthRequiredError - No token persisted (exit 2)
        ReauthRequiredError - Refresh rejected or scopes missing (exit 2)
        ApiError - Non-success HTTP response (exit 3)
            ScopeMissingError - Forbidden because of a missing scope (exit 3)
        TransportError - Network-level failure (exit 3)
"""

from typing import Any


EXIT_OK = 0
EXIT_USER = 1
EXIT_AUTH = 2
EXIT_REMOTE = 3


class SpotCliError(Exception):
    """
    Base exception for all spot-cli errors.

    Attributes:
        message: One-line, human-readable error description.
        details: Optional dictionary with additional context for logging.
        hint: Optional short suggestion shown after the message.

    Example:
        try:
            ctx.auth.token()
        except SpotCliError as e:
            logger.error(f"Operation failed: {e.message}")
            sys.exit(e.exit_code)
    """

    exit_code = EXIT_USER
    kind = "error"

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        hint: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.hint = hint

    def __str__(self) -> str:
        """Return the message with its hint suffix, if any."""
        if self.hint:
            return f"{self.message}; hint: {self.hint}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for --json error output."""
        return {"kind": self.kind, "message": self.message, "hint": self.hint}


class UserInputError(SpotCliError):
    """
    Raised when the user supplied something unusable.

    Common causes:
        - Query missing where one is required
        - pick out of range
        - Pin alias not found
        - Unrecognized resource URI or URL
    """
    kind = "user_input"


class NotFoundError(SpotCliError):
    """Raised when a cache is empty or a query matched nothing."""
    kind = "not_found"


class ReadOnlyTargetError(SpotCliError):
    """Raised when the playlist chosen for a write is not writable by the user."""
    kind = "read_only"


class DecodeError(SpotCliError):
    """
    Raised when a JSON document cannot be decoded.

    Covers both local cache files (including files left truncated by an
    interrupted write) and remote payloads of an unexpected shape.
    """
    kind = "decode"


class ConfigError(SpotCliError):
    """
    Raised when configuration is invalid.

    Example:
        raise ConfigError(
            "Invalid YAML syntax in configuration file",
            details={'file_path': '/path/to/config.yaml'}
        )
    """
    kind = "config"


class AuthRequiredError(SpotCliError):
    """Raised when a command needs a token and none is persisted."""
    exit_code = EXIT_AUTH
    kind = "auth_required"

    def __init__(
        self,
        message: str = "not logged in",
        details: dict | None = None,
        hint: str | None = "run `spot auth login`"
    ) -> None:
        super().__init__(message, details, hint)


class ReauthRequiredError(SpotCliError):
    """
    Raised when the session cannot be renewed without a new login.

    Either the refresh token was rejected (revoked or expired), there is
    no refresh token at all, or the granted scopes lack a required scope.
    """
    exit_code = EXIT_AUTH
    kind = "reauth_required"

    def __init__(
        self,
        message: str = "session expired, re-login",
        details: dict | None = None,
        hint: str | None = "run `spot auth login`"
    ) -> None:
        super().__init__(message, details, hint)


class ApiError(SpotCliError):
    """
    Raised when the Web API answers with a non-success status.

    Attributes:
        method: HTTP verb of the failed request.
        path: Request path (or absolute URL for pagination requests).
        status: HTTP status code.
        body: Raw response body text.
    """
    exit_code = EXIT_REMOTE
    kind = "api"

    def __init__(
        self,
        method: str,
        path: str,
        status: int,
        body: str = "",
        hint: str | None = None
    ) -> None:
        message = f"{method} {path} failed with status {status}"
        summary = _body_summary(body)
        if summary:
            message = f"{message}: {summary}"
        super().__init__(
            message,
            details={"method": method, "path": path, "status": status, "body": body},
            hint=hint
        )
        self.method = method
        self.path = path
        self.status = status
        self.body = body


class ScopeMissingError(ApiError):
    """Raised when the API refuses a call because a scope was not granted."""
    kind = "scope_missing"


class TransportError(SpotCliError):
    """Raised when a request never produced an HTTP response."""
    exit_code = EXIT_REMOTE
    kind = "transport"


def _body_summary(body: str) -> str:
    # Collapse the body to one line so the message stays one line.
    text = " ".join((body or "").split())
    if len(text) > 200:
        text = text[:197] + "..."
    return text
