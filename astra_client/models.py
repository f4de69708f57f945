"""Data models for the Astra client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class StatusEnum(str, Enum):
    """All the statuses a database can report."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    PREPARED = "PREPARED"
    INITIALIZING = "INITIALIZING"
    PARKED = "PARKED"
    PARKING = "PARKING"
    UNPARKING = "UNPARKING"
    TERMINATED = "TERMINATED"
    TERMINATING = "TERMINATING"
    RESIZING = "RESIZING"
    ERROR = "ERROR"
    MAINTENANCE = "MAINTENANCE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> "StatusEnum":
        return cls.UNKNOWN


# =============================================================================
# Errors
# =============================================================================


@dataclass
class ErrorDetail:
    """A single error entry returned by the API.

    Attributes:
        id: API specific error code.
        message: User-friendly description of the error.
    """
    id: int
    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorDetail":
        """Parse from API response."""
        # older API versions send the code as "ID"
        error_id = data.get("id", data.get("ID", 0))
        return cls(id=int(error_id or 0), message=data.get("message", ""))


@dataclass
class ErrorResponse:
    """Body returned by the API when a request fails."""
    errors: list[ErrorDetail] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorResponse":
        """Parse from API response."""
        return cls(
            errors=[ErrorDetail.from_dict(e) for e in data.get("errors") or []]
        )


def format_errors(errors: list[ErrorDetail]) -> str:
    """Render API errors as one line, keeping the order the API returned."""
    return ", ".join(f"ID: {e.id} Text: '{e.message}'" for e in errors)


# =============================================================================
# Authentication
# =============================================================================


@dataclass
class ClientInfo:
    """Legacy service account credentials."""
    client_name: str
    client_id: str
    client_secret: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "clientName": self.client_name,
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientInfo":
        """Parse from a service account file."""
        return cls(
            client_name=data["clientName"],
            client_id=data["clientId"],
            client_secret=data["clientSecret"],
        )


@dataclass
class TokenResponse:
    """Response of the service account token exchange."""
    token: str
    errors: list[ErrorDetail] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenResponse":
        """Parse from API response."""
        return cls(
            token=data.get("token") or "",
            errors=[ErrorDetail.from_dict(e) for e in data.get("errors") or []],
        )


# =============================================================================
# Databases
# =============================================================================


@dataclass
class CreateDb:
    """Definition of a new database.

    User and password are only required on legacy tiers.

    Attributes:
        name: User friendly name of the database.
        keyspace: Initial keyspace name.
        cloud_provider: Cloud provider the database lives on (e.g., "GCP").
        tier: Compute tier (e.g., "serverless", "developer").
        capacity_units: Horizontal scaling units; 1 on the free tier.
        region: Cloud region (e.g., "europe-west1").
        user: Database user.
        password: Password for the database user.
    """
    name: str
    keyspace: str
    cloud_provider: str
    tier: str
    capacity_units: int
    region: str
    user: str = ""
    password: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "keyspace": self.keyspace,
            "cloudProvider": self.cloud_provider,
            "tier": self.tier,
            "capacityUnits": self.capacity_units,
            "region": self.region,
            "user": self.user,
            "password": self.password,
        }


@dataclass
class DatabaseInfo:
    """Metadata describing a database."""
    name: Optional[str] = None
    keyspace: Optional[str] = None
    cloud_provider: Optional[str] = None
    tier: Optional[str] = None
    capacity_units: Optional[int] = None
    region: Optional[str] = None
    user: Optional[str] = None
    additional_keyspaces: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DatabaseInfo":
        """Parse from API response."""
        return cls(
            name=data.get("name"),
            keyspace=data.get("keyspace"),
            cloud_provider=data.get("cloudProvider"),
            tier=data.get("tier"),
            capacity_units=data.get("capacityUnits"),
            region=data.get("region"),
            user=data.get("user"),
            additional_keyspaces=data.get("additionalKeyspaces") or [],
        )


@dataclass
class Storage:
    """Storage available to a database cluster."""
    node_count: int = 0
    replication_factor: int = 0
    total_storage: int = 0
    used_storage: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Storage":
        """Parse from API response."""
        return cls(
            node_count=data.get("nodeCount", 0),
            replication_factor=data.get("replicationFactor", 0),
            total_storage=data.get("totalStorage", 0),
            used_storage=data.get("usedStorage"),
        )


@dataclass
class Database:
    """A snapshot of a database as returned by the API.

    A new snapshot is built on every fetch; nothing is updated in place.

    Attributes:
        id: Database identifier.
        status: Current status of the database.
        org_id: Owning organization.
        owner_id: Owning user.
        info: Name, keyspace, tier and placement of the database.
        creation_time: RFC 3339 creation timestamp.
        termination_time: RFC 3339 termination timestamp.
        storage: Storage figures for the cluster.
        available_actions: Actions currently allowed on the database.
        message: Message to the customer about the cluster.
    """
    id: str
    status: StatusEnum
    org_id: Optional[str] = None
    owner_id: Optional[str] = None
    info: DatabaseInfo = field(default_factory=DatabaseInfo)
    creation_time: Optional[str] = None
    termination_time: Optional[str] = None
    storage: Storage = field(default_factory=Storage)
    available_actions: list[str] = field(default_factory=list)
    message: Optional[str] = None
    studio_url: Optional[str] = None
    grafana_url: Optional[str] = None
    cqlsh_url: Optional[str] = None
    graphql_url: Optional[str] = None
    data_endpoint_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Database":
        """Parse from API response."""
        return cls(
            id=data["id"],
            status=StatusEnum(data["status"]),
            org_id=data.get("orgId"),
            owner_id=data.get("ownerId"),
            info=DatabaseInfo.from_dict(data.get("info") or {}),
            creation_time=data.get("creationTime"),
            termination_time=data.get("terminationTime"),
            storage=Storage.from_dict(data.get("storage") or {}),
            available_actions=data.get("availableActions") or [],
            message=data.get("message"),
            studio_url=data.get("studioUrl"),
            grafana_url=data.get("grafanaUrl"),
            cqlsh_url=data.get("cqlshUrl"),
            graphql_url=data.get("graphqlUrl"),
            data_endpoint_url=data.get("dataEndpointUrl"),
        )


@dataclass
class SecureBundle:
    """Download links for the connection bundle; they expire after about five minutes."""
    download_url: str
    download_url_internal: Optional[str] = None
    download_url_migration_proxy: Optional[str] = None
    download_url_migration_proxy_internal: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecureBundle":
        """Parse from API response."""
        return cls(
            download_url=data["downloadURL"],
            download_url_internal=data.get("downloadURLInternal"),
            download_url_migration_proxy=data.get("downloadURLMigrationProxy"),
            download_url_migration_proxy_internal=data.get(
                "downloadURLMigrationProxyInternal"
            ),
        )


# =============================================================================
# Tiers
# =============================================================================


@dataclass
class Costs:
    """Cost figures for a tier, in cents."""
    cost_per_min_cents: float = 0.0
    cost_per_hour_cents: float = 0.0
    cost_per_day_cents: float = 0.0
    cost_per_month_cents: float = 0.0
    cost_per_min_parked_cents: float = 0.0
    cost_per_hour_parked_cents: float = 0.0
    cost_per_day_parked_cents: float = 0.0
    cost_per_month_parked_cents: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Costs":
        """Parse from API response."""
        return cls(
            cost_per_min_cents=data.get("costPerMinCents", 0.0),
            cost_per_hour_cents=data.get("costPerHourCents", 0.0),
            cost_per_day_cents=data.get("costPerDayCents", 0.0),
            cost_per_month_cents=data.get("costPerMonthCents", 0.0),
            cost_per_min_parked_cents=data.get("costPerMinParkedCents", 0.0),
            cost_per_hour_parked_cents=data.get("costPerHourParkedCents", 0.0),
            cost_per_day_parked_cents=data.get("costPerDayParkedCents", 0.0),
            cost_per_month_parked_cents=data.get("costPerMonthParkedCents", 0.0),
        )


@dataclass
class TierInfo:
    """A supported tier, cloud provider and region combination with its usage."""
    tier: str
    cloud_provider: str
    region: str
    cost: Optional[Costs] = None
    database_count_used: int = 0
    database_count_limit: int = 0
    capacity_units_used: int = 0
    capacity_units_limit: int = 0
    default_storage_per_capacity_unit_gb: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TierInfo":
        """Parse from API response."""
        cost = data.get("cost")
        return cls(
            tier=data["tier"],
            cloud_provider=data["cloudProvider"],
            region=data["region"],
            cost=Costs.from_dict(cost) if cost else None,
            database_count_used=data.get("databaseCountUsed", 0),
            database_count_limit=data.get("databaseCountLimit", 0),
            capacity_units_used=data.get("capacityUnitsUsed", 0),
            capacity_units_limit=data.get("capacityUnitsLimit", 0),
            default_storage_per_capacity_unit_gb=data.get(
                "defaultStoragePerCapacityUnitGb", 0
            ),
        )
