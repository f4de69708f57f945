"""HTTP client for the Astra DevOps API."""

import logging
from typing import Any, Callable, Iterable, Optional, Union

import httpx

from .errors import AstraError, DecodeFailure, RemoteRejection, TransportFailure
from .models import (
    ClientInfo,
    CreateDb,
    Database,
    ErrorResponse,
    SecureBundle,
    StatusEnum,
    TierInfo,
    TokenResponse,
)
from .polling import RetryPolicy, poll_until

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.astra.datastax.com"

DEFAULT_TIMEOUT = httpx.Timeout(5.0, connect=10.0)
DEFAULT_LIMITS = httpx.Limits(max_connections=10, max_keepalive_connections=10)

CREATE_POLICY = RetryPolicy(attempts=30, interval_seconds=30)
PARK_POLICY = RetryPolicy(attempts=30, interval_seconds=30)
UNPARK_POLICY = RetryPolicy(attempts=60, interval_seconds=30)
TERMINATE_POLICY = RetryPolicy(attempts=30, interval_seconds=10)

TERMINATED_STATUSES = frozenset([StatusEnum.TERMINATED, StatusEnum.TERMINATING])


class AstraClient:
    """HTTP client for the Astra DevOps API.

    The ``*_async`` methods fire a single request and return as soon as it
    is accepted. ``create_db``, ``terminate``, ``park`` and ``unpark`` also
    block until the database reaches the matching status.

    Example:
        >>> with AstraClient(token) as client:
        ...     db = client.create_db(
        ...         CreateDb(
        ...             name="mydb",
        ...             keyspace="mykeyspace",
        ...             cloud_provider="GCP",
        ...             tier="serverless",
        ...             capacity_units=1,
        ...             region="europe-west1",
        ...         )
        ...     )
        ...     client.terminate(db.id)
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        verbose: bool = False,
        timeout: Union[httpx.Timeout, float] = DEFAULT_TIMEOUT,
        limits: httpx.Limits = DEFAULT_LIMITS,
        gone_status_codes: Iterable[int] = (401,),
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """Create a new Astra client.

        Args:
            token: Application token generated in the Astra UI.
            base_url: Base URL of the API.
            verbose: Log every poll attempt in detail.
            timeout: Request timeout, or per-phase timeouts.
            limits: Connection pool limits.
            gone_status_codes: Status codes of a database fetch that mean the
                database has been removed after a terminate.
            transport: Optional httpx transport, mostly useful for testing.
            sleep: Replacement for ``time.sleep`` in the poll loop.
        """
        self.base_url = base_url.rstrip("/")
        self.verbose = verbose
        self.gone_status_codes = frozenset(gone_status_codes)
        self._token = token
        self._sleep = sleep
        self._client = httpx.Client(timeout=timeout, limits=limits, transport=transport)

    @classmethod
    def authenticate(
        cls,
        client_info: ClientInfo,
        *,
        base_url: str = DEFAULT_BASE_URL,
        **kwargs: Any,
    ) -> "AstraClient":
        """Exchange legacy service account credentials for a token.

        Prefer creating the client from a token directly.

        Args:
            client_info: Service account credentials.
            base_url: Base URL of the API.
            **kwargs: Passed through to the constructor.

        Returns:
            A client using the token returned by the API.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the credentials are refused.
            AstraError: If the API returned an empty token.
        """
        client = cls("", base_url=base_url, **kwargs)
        try:
            response = client._request(
                "POST", "/v2/authenticateServiceAccount", json=client_info.to_dict()
            )
            client._expect(response, 200)
            token = client._decode(response, TokenResponse.from_dict).token
            if not token:
                raise AstraError("empty token in token response")
        except AstraError:
            client.close()
            raise
        client._token = token
        return client

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def _headers(self) -> dict[str, str]:
        """Get request headers."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        """Make an HTTP request."""
        url = f"{self.base_url}{path}"
        try:
            return self._client.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{method} {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{method} {url} failed: {e}") from e

    def _expect(self, response: httpx.Response, *expected_codes: int) -> None:
        """Raise RemoteRejection unless the status code is one of ``expected_codes``."""
        if response.status_code in expected_codes:
            return
        try:
            body = ErrorResponse.from_dict(response.json())
        except (ValueError, TypeError, AttributeError) as e:
            raise RemoteRejection(
                response.status_code, expected_codes, decode_error=str(e)
            ) from e
        raise RemoteRejection(response.status_code, expected_codes, body.errors)

    def _decode(self, response: httpx.Response, parse):
        """Parse a successful response body, raising DecodeFailure on a shape mismatch."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DecodeFailure(response.status_code, repr(e)) from e

    def _database_path(self, database_id: str, action: str = "") -> str:
        path = f"/v2/databases/{database_id}"
        return f"{path}/{action}" if action else path

    # =========================================================================
    # Databases
    # =========================================================================

    def find_db(self, database_id: str) -> Database:
        """Get the current state of a database.

        Args:
            database_id: The database ID.

        Returns:
            A fresh snapshot of the database.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the API does not answer 200.
            DecodeFailure: If the body is not a database.
        """
        response = self._request("GET", self._database_path(database_id))
        self._expect(response, 200)
        return self._decode(response, Database.from_dict)

    def list_dbs(
        self,
        *,
        include: Optional[str] = None,
        provider: Optional[str] = None,
        starting_after: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Database]:
        """List databases.

        Args:
            include: Only return databases in the listed states.
            provider: Only return databases of this cloud provider.
            starting_after: Pagination cursor, the last id of the previous page.
            limit: Page size.

        Returns:
            The matching databases.
        """
        params: dict[str, Any] = {}
        if include:
            params["include"] = include
        if provider:
            params["provider"] = provider
        if starting_after:
            params["starting_after"] = starting_after
        if limit:
            params["limit"] = limit
        response = self._request("GET", "/v2/databases", params=params or None)
        self._expect(response, 200)
        return self._decode(
            response, lambda data: [Database.from_dict(d) for d in data]
        )

    def get_secure_bundle(self, database_id: str) -> SecureBundle:
        """Get temporary download links for the connection bundle of a database.

        The links expire after about five minutes.
        """
        response = self._request(
            "POST", self._database_path(database_id, "secureBundleURL")
        )
        self._expect(response, 200)
        return self._decode(response, SecureBundle.from_dict)

    def get_tier_info(self) -> list[TierInfo]:
        """List every supported tier, cloud provider and region combination."""
        response = self._request("GET", "/v2/availableRegions")
        self._expect(response, 200)
        return self._decode(
            response, lambda data: [TierInfo.from_dict(t) for t in data]
        )

    def add_keyspace(self, database_id: str, keyspace: str) -> None:
        """Add a keyspace to a database."""
        response = self._request(
            "POST", self._database_path(database_id, f"keyspaces/{keyspace}")
        )
        self._expect(response, 200)

    def resize(self, database_id: str, capacity_units: int) -> None:
        """Resize a database to the given total number of capacity units.

        Shrinking is not supported, and serverless databases cannot be resized.

        Raises:
            RemoteRejection: If the API does not answer 200.
        """
        response = self._request(
            "POST",
            self._database_path(database_id, "resize"),
            json={"capacityUnits": capacity_units},
        )
        self._expect(response, 200)

    def reset_password(self, database_id: str, username: str, password: str) -> None:
        """Change the password of a database user.

        Raises:
            RemoteRejection: If the API does not answer 200.
        """
        response = self._request(
            "POST",
            self._database_path(database_id, "resetPassword"),
            json={"username": username, "password": password},
        )
        self._expect(response, 200)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def wait_until(
        self,
        database_id: str,
        status: Union[StatusEnum, Iterable[StatusEnum]],
        policy: RetryPolicy,
    ) -> Database:
        """Block until the database reports ``status``.

        Args:
            database_id: The database ID.
            status: Status, or statuses, to wait for.
            policy: Attempt and interval budget.

        Returns:
            The first snapshot in one of the wanted statuses.

        Raises:
            ConvergenceTimeout: If the status was not reached within the budget.
        """
        return poll_until(
            database_id,
            self.find_db,
            status,
            policy,
            verbose=self.verbose,
            sleep=self._sleep,
        )

    def create_db_async(self, create_db: CreateDb) -> str:
        """Create a database and return as soon as the request is accepted.

        Returns:
            The new database ID, taken from the ``location`` header.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the API does not answer 201.
            DecodeFailure: If the response has no ``location`` header.
        """
        response = self._request("POST", "/v2/databases", json=create_db.to_dict())
        self._expect(response, 201)
        database_id = response.headers.get("location", "").strip()
        if not database_id:
            raise DecodeFailure(response.status_code, "missing location header")
        return database_id

    def create_db(
        self, create_db: CreateDb, policy: Optional[RetryPolicy] = None
    ) -> Database:
        """Create a database and wait until it is ACTIVE."""
        database_id = self.create_db_async(create_db)
        logger.info("db %s created, waiting for it to become active", database_id)
        return self.wait_until(database_id, StatusEnum.ACTIVE, policy or CREATE_POLICY)

    def terminate_async(self, database_id: str, prepared_state_only: bool = False) -> None:
        """Terminate a database and return as soon as the request is accepted.

        Args:
            database_id: The database ID.
            prepared_state_only: Only terminate a database in the prepared
                state; leave False in almost all cases.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the API does not answer 202.
        """
        response = self._request(
            "POST",
            self._database_path(database_id, "terminate"),
            params={"preparedStateOnly": "true" if prepared_state_only else "false"},
        )
        self._expect(response, 202)

    def terminate(
        self,
        database_id: str,
        prepared_state_only: bool = False,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Terminate a database and wait until it is terminating, terminated or gone.

        A fetch rejected with one of ``gone_status_codes`` ends the wait
        successfully.
        """
        self.terminate_async(database_id, prepared_state_only)
        poll_until(
            database_id,
            self.find_db,
            TERMINATED_STATUSES,
            policy or TERMINATE_POLICY,
            is_gone=self._is_gone,
            verbose=self.verbose,
            sleep=self._sleep,
        )

    def park_async(self, database_id: str) -> None:
        """Park a database. Serverless databases cannot be parked.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the API does not answer 202.
        """
        response = self._request("POST", self._database_path(database_id, "park"))
        self._expect(response, 202)

    def park(self, database_id: str, policy: Optional[RetryPolicy] = None) -> Database:
        """Park a database and wait until it is PARKED."""
        self.park_async(database_id)
        return self.wait_until(database_id, StatusEnum.PARKED, policy or PARK_POLICY)

    def unpark_async(self, database_id: str) -> None:
        """Unpark a database. Serverless databases cannot be unparked.

        Raises:
            TransportFailure: If unable to reach the API.
            RemoteRejection: If the API does not answer 202.
        """
        response = self._request("POST", self._database_path(database_id, "unpark"))
        self._expect(response, 202)

    def unpark(self, database_id: str, policy: Optional[RetryPolicy] = None) -> Database:
        """Unpark a database and wait until it is ACTIVE."""
        self.unpark_async(database_id)
        return self.wait_until(database_id, StatusEnum.ACTIVE, policy or UNPARK_POLICY)

    def _is_gone(self, error: RemoteRejection) -> bool:
        return error.status_code in self.gone_status_codes
