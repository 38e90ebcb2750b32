import base64
from datetime import datetime
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit
from pydantic import BaseModel, ConfigDict, Field, field_validator

from registry_reconciler.constants import (
    BASIC_PREFIX,
    DATA_CENTER_INFO_CLASS,
    DATA_CENTER_INFO_NAME,
    DEFAULT_APP_NAME,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_EUREKA_APPS_PATH,
    DEFAULT_HEARTBEAT_CRON,
    DEFAULT_INSTANCE_HEALTH_CHECK_PATH,
    DEFAULT_PASSWORD,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SCHEME_PORTS,
    DEFAULT_SERVER_HEALTH_CHECK_PATH,
    DEFAULT_USERNAME,
    EUREKA_PATH_SEGMENT,
    HEARTBEAT_STATUS_QUERY,
    INSTANCE_STATUS_UP,
    REDACTED,
)
from registry_reconciler.errors import MalformedInstanceTarget


class HealthStatus(Enum):
    UP = "UP"
    DOWN = "DOWN"


class RegistrationState(Enum):
    REGISTERED = "REGISTERED"
    NOT_REGISTERED = "NOT_REGISTERED"


class InstanceAction(Enum):
    REGISTER = "register"
    HEARTBEAT = "heartbeat"
    DEREGISTER = "deregister"
    SKIP = "skip"


class OutcomeResult(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class BasicCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD

    def to_header(self) -> str:
        """Build the Authorization header value for these credentials"""
        token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return f"{BASIC_PREFIX}{token}"


def _host_from_netloc(netloc: str) -> str:
    # urlsplit().hostname lowercases; the registry key keeps the configured case
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        return host[: host.index("]") + 1]
    return host.partition(":")[0]


@dataclass(frozen=True)
class ServiceInstance:
    url: str
    hostname: str
    port: int
    health_check_path: str = DEFAULT_INSTANCE_HEALTH_CHECK_PATH

    @property
    def instance_key(self) -> str:
        return f"{self.hostname}:{self.port}"

    @classmethod
    def from_url(
        cls, url: str, health_check_path: str = DEFAULT_INSTANCE_HEALTH_CHECK_PATH
    ) -> "ServiceInstance":
        """Parse a configured instance URL such as http://host:8080"""
        target = url.strip()
        parts = urlsplit(target)
        if parts.scheme not in DEFAULT_SCHEME_PORTS:
            raise MalformedInstanceTarget(target, f"unsupported scheme '{parts.scheme}'")
        if not parts.hostname:
            raise MalformedInstanceTarget(target, "missing hostname")
        try:
            port = parts.port
        except ValueError as e:
            raise MalformedInstanceTarget(target, str(e)) from e
        if port is None:
            port = DEFAULT_SCHEME_PORTS[parts.scheme]
        return cls(
            url=target,
            hostname=_host_from_netloc(parts.netloc),
            port=port,
            health_check_path=health_check_path,
        )


@dataclass(frozen=True)
class RegistryServer:
    url: str
    apps_path: str
    health_check_path: str
    auth_header: str

    @property
    def health_base_url(self) -> str:
        """Server root used for the server's own health probe"""
        base = self.url.rstrip("/")
        if base.endswith(EUREKA_PATH_SEGMENT):
            return base[: -len(EUREKA_PATH_SEGMENT)]
        return base

    def app_url(self, app_name: str) -> str:
        return f"{self.url}{self.apps_path}{app_name}"

    def instance_url(self, app_name: str, instance_key: str) -> str:
        return f"{self.app_url(app_name)}/{instance_key}"

    def heartbeat_url(self, app_name: str, instance_key: str) -> str:
        return f"{self.instance_url(app_name, instance_key)}{HEARTBEAT_STATUS_QUERY}"


@dataclass
class ServerAttempt:
    server: str
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class FailoverResult:
    operation: InstanceAction
    success: bool = False
    server: Optional[str] = None
    attempts: List[ServerAttempt] = field(default_factory=list)


@dataclass
class InstanceOutcome:
    instance_url: str
    action: InstanceAction
    result: OutcomeResult
    instance_key: Optional[str] = None
    reason: Optional[str] = None
    server: Optional[str] = None


@dataclass
class CycleReport:
    cycle_id: int
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    outcomes: List[InstanceOutcome] = field(default_factory=list)

    def count(self, result: OutcomeResult) -> int:
        return sum(1 for outcome in self.outcomes if outcome.result == result)

    @property
    def succeeded(self) -> int:
        return self.count(OutcomeResult.SUCCESS)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeResult.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeResult.FAILED)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


# Eureka registration payload
class PortInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    number: int = Field(..., alias="$", ge=1, le=65535)
    enabled: bool = Field(True, alias="@enabled")


class DataCenterInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(DATA_CENTER_INFO_CLASS, alias="@class")
    name: str = DATA_CENTER_INFO_NAME


class InstanceRegistration(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ip_addr: str = Field(..., alias="ipAddr")
    app: str
    host_name: str = Field(..., alias="hostName")
    port: PortInfo
    health_check_url: str = Field(..., alias="healthCheckUrl")
    status: str = INSTANCE_STATUS_UP
    data_center_info: DataCenterInfo = Field(
        default_factory=DataCenterInfo, alias="dataCenterInfo"
    )


class RegistrationRequest(BaseModel):
    instance: InstanceRegistration

    @classmethod
    def for_instance(
        cls, hostname: str, port: int, app_name: str, health_check_url: str
    ) -> "RegistrationRequest":
        return cls(
            instance=InstanceRegistration(
                ip_addr=hostname,
                app=app_name,
                host_name=hostname,
                port=PortInfo(number=port),
                health_check_url=health_check_url,
            )
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ReconcilerSettings(BaseModel):
    """Read-only configuration injected into the reconciler at startup"""

    model_config = ConfigDict(frozen=True)

    connect_timeout_seconds: float = Field(DEFAULT_CONNECT_TIMEOUT_SECONDS, gt=0)
    request_timeout_seconds: float = Field(DEFAULT_REQUEST_TIMEOUT_SECONDS, ge=0)
    heartbeat_cron: str = DEFAULT_HEARTBEAT_CRON
    server_urls: List[str] = Field(..., min_length=1)
    instance_urls: List[str] = Field(default_factory=list)
    app_name: str = Field(DEFAULT_APP_NAME, min_length=1)
    instance_health_check_path: str = DEFAULT_INSTANCE_HEALTH_CHECK_PATH
    apps_path: str = DEFAULT_EUREKA_APPS_PATH
    server_health_check_path: str = DEFAULT_SERVER_HEALTH_CHECK_PATH
    server_credentials: BasicCredentials = Field(default_factory=BasicCredentials)
    instance_credentials: BasicCredentials = Field(default_factory=BasicCredentials)

    @field_validator("server_urls", "instance_urls", mode="before")
    @classmethod
    def split_comma_separated(cls, v):
        """Accept comma-separated strings and drop blank entries"""
        if isinstance(v, str):
            v = v.split(",")
        return [item.strip() for item in v if item and item.strip()]

    @field_validator(
        "instance_health_check_path", "apps_path", "server_health_check_path"
    )
    @classmethod
    def validate_path(cls, v):
        if not v.startswith("/"):
            raise ValueError("Path must start with /")
        return v

    @property
    def request_timeout(self) -> Optional[float]:
        """Per-request timeout, None when disabled"""
        return self.request_timeout_seconds if self.request_timeout_seconds > 0 else None

    def build_servers(self) -> List[RegistryServer]:
        auth_header = self.server_credentials.to_header()
        return [
            RegistryServer(
                url=url,
                apps_path=self.apps_path,
                health_check_path=self.server_health_check_path,
                auth_header=auth_header,
            )
            for url in self.server_urls
        ]

    def redacted(self) -> Dict[str, Any]:
        data = self.model_dump()
        for key in ("server_credentials", "instance_credentials"):
            data[key]["password"] = REDACTED
        return data


# Pydantic models for API responses
class InstanceOutcomeResponse(BaseModel):
    instance_url: str
    instance_key: Optional[str]
    action: str
    result: str
    reason: Optional[str]
    server: Optional[str]

    @classmethod
    def from_outcome(cls, outcome: InstanceOutcome) -> "InstanceOutcomeResponse":
        return cls(
            instance_url=outcome.instance_url,
            instance_key=outcome.instance_key,
            action=outcome.action.value,
            result=outcome.result.value,
            reason=outcome.reason,
            server=outcome.server,
        )


class CycleReportResponse(BaseModel):
    cycle_id: int
    started_at: datetime
    finished_at: Optional[datetime]
    duration_seconds: float
    succeeded: int
    skipped: int
    failed: int
    outcomes: List[InstanceOutcomeResponse]

    @classmethod
    def from_report(cls, report: CycleReport) -> "CycleReportResponse":
        return cls(
            cycle_id=report.cycle_id,
            started_at=report.started_at,
            finished_at=report.finished_at,
            duration_seconds=report.duration_seconds,
            succeeded=report.succeeded,
            skipped=report.skipped,
            failed=report.failed,
            outcomes=[InstanceOutcomeResponse.from_outcome(o) for o in report.outcomes],
        )
