"""Error taxonomy for prismblog.

Every failure a generation run can report derives from PrismblogError so the
CLI can catch one type. Disk failures are left as the built-in OSError.

Classes:
    FetchError: The CMS was unreachable, answered with an error status or
        returned an unreadable body.
    RenderError: A template was missing or failed while rendering.
    SyncError: A git operation on the deploy working copy failed.
"""

from __future__ import annotations


class PrismblogError(Exception):
    """Base class for all prismblog errors.

    Attributes:
        message: Human-readable error message.
        original_error: The underlying exception, when there is one.
    """

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class FetchError(PrismblogError):
    """Error raised when content cannot be fetched from the CMS.

    Attributes:
        url: Requested URL, when known.
        status_code: HTTP status returned by the API, when there was a response.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        self.url = url
        self.status_code = status_code
        super().__init__(message, original_error)


class RenderError(PrismblogError):
    """Error raised when a template cannot be rendered.

    Attributes:
        template_name: Name of the template that failed.
    """

    def __init__(
        self,
        template_name: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.template_name = template_name
        super().__init__(f"{template_name}: {message}", original_error)


class SyncError(PrismblogError):
    """Error raised when the deploy repository cannot be synchronised.

    Attributes:
        command: The git arguments that failed, when a command was run.
        stderr: Captured standard error of the failed command.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        original_error: Exception | None = None,
    ):
        self.command = command or []
        self.stderr = stderr
        super().__init__(message, original_error)
