"""Astra Python Client - HTTP client for the Astra DevOps API."""

from .client import AstraClient
from .errors import (
    AstraError,
    ConvergenceTimeout,
    DecodeFailure,
    RemoteRejection,
    TransportFailure,
)
from .models import (
    ClientInfo,
    Costs,
    CreateDb,
    Database,
    DatabaseInfo,
    ErrorDetail,
    ErrorResponse,
    SecureBundle,
    StatusEnum,
    Storage,
    TierInfo,
    format_errors,
)
from .polling import RetryPolicy, poll_until

__version__ = "0.1.0"
__all__ = [
    "AstraClient",
    "AstraError",
    "ConvergenceTimeout",
    "DecodeFailure",
    "RemoteRejection",
    "TransportFailure",
    "ClientInfo",
    "Costs",
    "CreateDb",
    "Database",
    "DatabaseInfo",
    "ErrorDetail",
    "ErrorResponse",
    "SecureBundle",
    "StatusEnum",
    "Storage",
    "TierInfo",
    "format_errors",
    "RetryPolicy",
    "poll_until",
]
