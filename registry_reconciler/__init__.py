# Registry Reconciler Package
# Main exports for easy importing

from registry_reconciler.errors import (
    ReconcilerError,
    ConfigurationError,
    TransportError,
    HttpStatusError,
    NoAvailableServer,
    MalformedInstanceTarget,
)
from registry_reconciler.types import (
    HealthStatus,
    RegistrationState,
    InstanceAction,
    OutcomeResult,
    BasicCredentials,
    ServiceInstance,
    RegistryServer,
    FailoverResult,
    InstanceOutcome,
    CycleReport,
    RegistrationRequest,
    ReconcilerSettings,
)
from registry_reconciler.transport import RegistryTransport
from registry_reconciler.health import HealthProber
from registry_reconciler.failover import FailoverClient
from registry_reconciler.reconciler import (
    ReconciliationEngine,
    decide_action,
)
from registry_reconciler.scheduler import CycleScheduler

__all__ = [
    # Errors
    "ReconcilerError",
    "ConfigurationError",
    "TransportError",
    "HttpStatusError",
    "NoAvailableServer",
    "MalformedInstanceTarget",
    # Types and models
    "HealthStatus",
    "RegistrationState",
    "InstanceAction",
    "OutcomeResult",
    "BasicCredentials",
    "ServiceInstance",
    "RegistryServer",
    "FailoverResult",
    "InstanceOutcome",
    "CycleReport",
    "RegistrationRequest",
    "ReconcilerSettings",
    # Core
    "RegistryTransport",
    "HealthProber",
    "FailoverClient",
    "ReconciliationEngine",
    "decide_action",
    "CycleScheduler",
]
