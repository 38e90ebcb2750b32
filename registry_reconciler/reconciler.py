import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from registry_reconciler.constants import (
    LOG_CYCLE_FINISHED,
    LOG_CYCLE_SKIPPED,
    LOG_CYCLE_STARTED,
    LOG_INSTANCE_DEREGISTERED,
    LOG_INSTANCE_HEARTBEAT,
    LOG_INSTANCE_REGISTERED,
    REASON_ALL_SERVERS_FAILED,
    REASON_MALFORMED_INSTANCE_TARGET,
    REASON_NO_AVAILABLE_SERVER,
    REASON_UNEXPECTED_ERROR,
)
from registry_reconciler.errors import MalformedInstanceTarget, NoAvailableServer
from registry_reconciler.failover import FailoverClient
from registry_reconciler.health import HealthProber
from registry_reconciler.logger_config import (
    ReconcilerLogger,
    log_cycle_summary,
    log_instance_action,
)
from registry_reconciler.types import (
    CycleReport,
    FailoverResult,
    HealthStatus,
    InstanceAction,
    InstanceOutcome,
    OutcomeResult,
    RegistrationState,
    ServiceInstance,
)

logger = ReconcilerLogger.get_logger(__name__)

_SUCCESS_MESSAGES = {
    InstanceAction.REGISTER: LOG_INSTANCE_REGISTERED,
    InstanceAction.HEARTBEAT: LOG_INSTANCE_HEARTBEAT,
    InstanceAction.DEREGISTER: LOG_INSTANCE_DEREGISTERED,
}


def decide_action(
    health: HealthStatus, registration: Optional[RegistrationState]
) -> InstanceAction:
    """Pick the registry action for one instance.

    ``registration`` is None when the registration query was not made or no
    registry server could answer it.
    """
    if health is HealthStatus.DOWN:
        return InstanceAction.DEREGISTER
    if registration is None:
        return InstanceAction.SKIP
    if registration is RegistrationState.REGISTERED:
        return InstanceAction.HEARTBEAT
    return InstanceAction.REGISTER


class ReconciliationEngine:
    """Runs reconciliation cycles over the configured instances"""

    def __init__(
        self,
        instance_urls: List[str],
        instance_health_check_path: str,
        instance_auth_header: str,
        prober: HealthProber,
        failover: FailoverClient,
    ):
        self._instance_urls = list(instance_urls)
        self._instance_health_check_path = instance_health_check_path
        self._instance_auth_header = instance_auth_header
        self._prober = prober
        self._failover = failover
        self._cycle_lock = asyncio.Lock()
        self._cycle_counter = 0
        self._last_report: Optional[CycleReport] = None
        self._stats = {
            "cycles_run": 0,
            "cycles_skipped": 0,
            "outcomes_success": 0,
            "outcomes_skipped": 0,
            "outcomes_failed": 0,
            "register_success": 0,
            "register_failure": 0,
            "heartbeat_success": 0,
            "heartbeat_failure": 0,
            "deregister_success": 0,
            "deregister_failure": 0,
            "last_cycle_duration_seconds": 0.0,
        }

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    def is_cycle_running(self) -> bool:
        return self._cycle_lock.locked()

    def get_stats(self) -> Dict[str, float]:
        return dict(self._stats)

    async def try_run_cycle(self) -> Optional[CycleReport]:
        """Run a cycle unless one is already in flight; a busy tick is dropped"""
        if self._cycle_lock.locked():
            logger.warning(LOG_CYCLE_SKIPPED)
            self._stats["cycles_skipped"] += 1
            return None
        async with self._cycle_lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleReport:
        self._cycle_counter += 1
        report = CycleReport(cycle_id=self._cycle_counter)
        logger.info(LOG_CYCLE_STARTED.format(report.cycle_id, len(self._instance_urls)))

        for target in self._instance_urls:
            try:
                outcome = await self.reconcile_instance(target)
            except Exception as e:
                logger.exception(f"Error occurred while processing instance {target}: {e}")
                outcome = InstanceOutcome(
                    instance_url=target,
                    action=InstanceAction.SKIP,
                    result=OutcomeResult.FAILED,
                    reason=REASON_UNEXPECTED_ERROR,
                )
            report.outcomes.append(outcome)
            self._record_outcome(outcome)

        report.finished_at = datetime.now()
        self._stats["cycles_run"] += 1
        self._stats["last_cycle_duration_seconds"] = report.duration_seconds
        self._last_report = report
        log_cycle_summary(
            logger,
            LOG_CYCLE_FINISHED.format(
                report.cycle_id, report.succeeded, report.skipped, report.failed
            ),
            report.cycle_id,
            report.succeeded,
            report.skipped,
            report.failed,
            report.duration_seconds,
        )
        return report

    async def reconcile_instance(self, target: str) -> InstanceOutcome:
        """Probe one instance and apply the matching registry action"""
        try:
            instance = ServiceInstance.from_url(target, self._instance_health_check_path)
        except MalformedInstanceTarget as e:
            logger.error(f"Error occurred while processing instance {target}: {e}")
            return InstanceOutcome(
                instance_url=target.strip(),
                action=InstanceAction.SKIP,
                result=OutcomeResult.FAILED,
                reason=REASON_MALFORMED_INSTANCE_TARGET,
            )

        key = instance.instance_key
        logger.debug(f"Performing health check for server: {key}")
        health = await self._prober.probe(
            instance.url, instance.health_check_path, self._instance_auth_header
        )

        registration: Optional[RegistrationState] = None
        if health is HealthStatus.UP:
            try:
                registration = await self._failover.query_registration(key)
            except NoAvailableServer as e:
                logger.error(f"Error occurred while checking registration for instance {key}: {e}")
                return InstanceOutcome(
                    instance_url=instance.url,
                    instance_key=key,
                    action=InstanceAction.SKIP,
                    result=OutcomeResult.SKIPPED,
                    reason=REASON_NO_AVAILABLE_SERVER,
                )

        action = decide_action(health, registration)
        result = await self._execute(action, instance)
        log_instance_action(
            logger,
            _SUCCESS_MESSAGES[action].format(key)
            if result.success
            else f"{action.value.capitalize()} failed on every server for instance {key}",
            key,
            action.value,
            result.success,
            server=result.server,
        )
        return InstanceOutcome(
            instance_url=instance.url,
            instance_key=key,
            action=action,
            result=OutcomeResult.SUCCESS if result.success else OutcomeResult.FAILED,
            reason=None if result.success else REASON_ALL_SERVERS_FAILED,
            server=result.server,
        )

    async def _execute(self, action: InstanceAction, instance: ServiceInstance) -> FailoverResult:
        if action is InstanceAction.DEREGISTER:
            return await self._failover.deregister(instance.instance_key)
        if action is InstanceAction.HEARTBEAT:
            return await self._failover.heartbeat(instance.instance_key)
        if action is InstanceAction.REGISTER:
            return await self._failover.register(instance.hostname, instance.port)
        raise ValueError(f"No registry call for action {action.value}")

    def _record_outcome(self, outcome: InstanceOutcome) -> None:
        self._stats[f"outcomes_{outcome.result.value}"] += 1
        if outcome.action is InstanceAction.SKIP:
            return
        suffix = "success" if outcome.result is OutcomeResult.SUCCESS else "failure"
        self._stats[f"{outcome.action.value}_{suffix}"] += 1
