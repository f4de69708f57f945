"""Error types for the Astra client."""

from typing import Iterable, Optional, Sequence

from .models import ErrorDetail, StatusEnum, format_errors


class AstraError(Exception):
    """Base exception for Astra client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportFailure(AstraError):
    """Raised when the request failed before a response was received."""

    def __init__(self, message: str):
        super().__init__(f"Transport error: {message}")

    def is_retryable(self) -> bool:
        return True


class RemoteRejection(AstraError):
    """Raised when the API answers with a status code we did not expect.

    Attributes:
        status_code: The status code actually returned.
        expected_codes: The status codes that would have been accepted.
        errors: Structured errors from the response body, in response order.
        decode_error: Set when the error body itself could not be decoded.
    """

    def __init__(
        self,
        status_code: int,
        expected_codes: Sequence[int],
        errors: Optional[list[ErrorDetail]] = None,
        decode_error: Optional[str] = None,
    ):
        self.status_code = status_code
        self.expected_codes = tuple(expected_codes)
        self.errors = list(errors or [])
        self.decode_error = decode_error
        if decode_error is not None:
            message = (
                f"unable to decode error response with error: '{decode_error}'. "
                f"status code was {status_code}"
            )
        else:
            codes_suffix = "s" if len(self.expected_codes) > 1 else ""
            errors_suffix = "s" if len(self.errors) > 1 else ""
            codes = ", ".join(str(c) for c in self.expected_codes)
            message = (
                f"expected status code{codes_suffix} {codes} but had: {status_code} "
                f"error with error{errors_suffix} - {format_errors(self.errors)}"
            )
        super().__init__(message)

    def is_retryable(self) -> bool:
        return self.status_code >= 500


class DecodeFailure(AstraError):
    """Raised when a successful response body does not match the expected shape."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(
            f"unable to decode response with error: {reason}. status code was {status_code}"
        )

    def is_retryable(self) -> bool:
        return False


class ConvergenceTimeout(AstraError):
    """Raised when a database never reached the target status within its budget."""

    def __init__(
        self,
        database_id: str,
        targets: Iterable[StatusEnum],
        budget_seconds: float,
        last_error: Optional[AstraError] = None,
    ):
        self.database_id = database_id
        self.targets = tuple(targets)
        self.budget_seconds = budget_seconds
        self.last_error = last_error
        wanted = "|".join(t.value for t in self.targets)
        message = (
            f"unable to find db id {database_id} with status {wanted} "
            f"after {budget_seconds:g} seconds"
        )
        if last_error is not None:
            message += f". last error was '{last_error.message}'"
        super().__init__(message)

    def is_retryable(self) -> bool:
        return False
