from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class _CamelModel(BaseModel):
    """Exposed shapes use camelCase on the wire, snake_case in Python."""

    class Config:
        populate_by_name = True


class NodeStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class NetworkHealth(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNSTABLE = "unstable"


class NodeTier(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    POOR = "Poor"


# =============================================================================
# GOSSIP (raw, owned by the pRPC collaborator)
# =============================================================================

class Pod(BaseModel):
    """Raw gossip record as returned by get-pods / get-pods-with-stats."""

    pubkey: Optional[str] = None
    address: Optional[str] = None
    version: Optional[str] = None
    last_seen_timestamp: Optional[int] = None
    uptime: Optional[float] = None
    storage_used: Optional[int] = None
    storage_committed: Optional[int] = None
    storage_usage_percent: Optional[float] = None
    is_public: Optional[bool] = None
    rpc_port: Optional[int] = None

    class Config:
        extra = "allow"


class PodsResponse(BaseModel):
    pods: List[dict] = Field(default_factory=list)
    total_count: Optional[int] = None


class NodeStats(BaseModel):
    """Runtime statistics from get-stats, issued against a node's own address."""

    active_streams: int = 0
    cpu_percent: float = 0.0
    current_index: int = 0
    file_size: int = 0
    last_updated: int = 0
    packets_received: int = 0
    packets_sent: int = 0
    ram_total: int = 0
    ram_used: int = 0
    total_bytes: int = 0
    total_pages: int = 0
    uptime: int = 0
    timestamp: Optional[str] = None

    class Config:
        extra = "allow"


# =============================================================================
# NODES
# =============================================================================

class Node(_CamelModel):
    pubkey: str
    status: NodeStatus
    version: str = "unknown"
    storage_used: int = Field(0, alias="storageUsed")
    storage_total: int = Field(0, alias="storageTotal")
    uptime: float = 0.0
    ip: str = ""
    last_seen: str = Field(..., alias="lastSeen")

    address: Optional[str] = None
    is_public: Optional[bool] = Field(None, alias="isPublic")
    rpc_port: Optional[int] = Field(None, alias="rpcPort")
    storage_committed: Optional[int] = Field(None, alias="storageCommitted")
    storage_usage_percent: Optional[float] = Field(None, alias="storageUsagePercent")
    last_seen_timestamp: Optional[int] = Field(None, alias="lastSeenTimestamp")

    # Filled in read-through from the per-node stats cache
    ram_used: Optional[int] = Field(None, alias="ramUsed")
    ram_total: Optional[int] = Field(None, alias="ramTotal")

    @property
    def is_online(self) -> bool:
        return self.status == NodeStatus.ONLINE

    @property
    def host(self) -> str:
        return self.address or self.ip


# =============================================================================
# ANALYTICS
# =============================================================================

class NodeMetrics(_CamelModel):
    pubkey: str
    health_score: float = Field(..., alias="healthScore")
    uptime_24h: float = Field(..., alias="uptime24h")
    storage_utilization: float = Field(..., alias="storageUtilization")
    tier: NodeTier


class AnalyticsSummary(_CamelModel):
    total_pnodes: int = Field(0, alias="totalPNodes")
    online_pnodes: int = Field(0, alias="onlinePNodes")
    online_percentage: float = Field(0.0, alias="onlinePercentage")
    total_pods: int = Field(0, alias="totalPods")
    active_pods: int = Field(0, alias="activePods")
    average_uptime: float = Field(0.0, alias="averageUptime")
    total_storage_used: int = Field(0, alias="totalStorageUsed")
    total_storage_capacity: int = Field(0, alias="totalStorageCapacity")
    total_storage_used_tb: float = Field(0.0, alias="totalStorageUsedTB")
    total_storage_capacity_tb: float = Field(0.0, alias="totalStorageCapacityTB")
    network_health: NetworkHealth = Field(NetworkHealth.UNSTABLE, alias="networkHealth")
    consensus_version: str = Field("unknown", alias="consensusVersion")


class ExtendedSummary(_CamelModel):
    total_pnodes: int = Field(0, alias="totalPNodes")
    online_percentage: float = Field(0.0, alias="onlinePercentage")
    average_uptime_24h: float = Field(0.0, alias="averageUptime24h")
    average_health_score: float = Field(0.0, alias="averageHealthScore")
    storage_pressure_percent: float = Field(0.0, alias="storagePressurePercent")
    network_health: NetworkHealth = Field(NetworkHealth.UNSTABLE, alias="networkHealth")


class StorageAnalytics(_CamelModel):
    pubkey: str
    storage_used: int = Field(..., alias="storageUsed")
    storage_total: int = Field(..., alias="storageTotal")
    utilization_percent: float = Field(..., alias="utilizationPercent")


class VersionDistribution(BaseModel):
    version: str
    count: int


class TopNode(_CamelModel):
    pubkey: str
    health_score: float = Field(..., alias="healthScore")
    uptime_24h: float = Field(..., alias="uptime24h")


class StoragePressure(_CamelModel):
    high_pressure_nodes: int = Field(0, alias="highPressureNodes")
    total_nodes: int = Field(0, alias="totalNodes")
    percent: float = 0.0


# =============================================================================
# GEO / MAP
# =============================================================================

class GeoLocation(_CamelModel):
    lat: float
    lng: float
    country: str
    country_code: str = Field(..., alias="countryCode")
    region: str
    city: Optional[str] = None


class MapNode(_CamelModel):
    pubkey: str
    lat: float
    lng: float
    country: str
    country_code: str = Field(..., alias="countryCode")
    region: str
    status: NodeStatus
    health_score: float = Field(0.0, alias="healthScore")
    uptime_24h: float = Field(0.0, alias="uptime24h")
    storage_utilization: float = Field(0.0, alias="storageUtilization")
    version: str
    last_seen: str = Field(..., alias="lastSeen")


class CountryCount(BaseModel):
    country: str
    count: int


class RegionCount(BaseModel):
    region: str
    count: int


class GeoSummary(BaseModel):
    countries: List[CountryCount] = Field(default_factory=list)
    regions: List[RegionCount] = Field(default_factory=list)


class CountryStats(_CamelModel):
    country_code: str = Field(..., alias="countryCode")
    country: str
    node_count: int = Field(..., alias="nodeCount")
    online_count: int = Field(..., alias="onlineCount")
    offline_count: int = Field(..., alias="offlineCount")
    avg_health_score: float = Field(..., alias="avgHealthScore")
    avg_uptime_24h: float = Field(..., alias="avgUptime24h")
    avg_storage_utilization: float = Field(..., alias="avgStorageUtilization")


class CountryChoropleth(_CamelModel):
    countries: List[CountryStats] = Field(default_factory=list)
    total_nodes: int = Field(0, alias="totalNodes")
    total_countries: int = Field(0, alias="totalCountries")


def dump(model: BaseModel) -> dict:
    """Wire/cache representation of a model (camelCase, JSON-safe)."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
