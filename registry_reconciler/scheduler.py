"""Cron-driven trigger for reconciliation cycles.

Accepts Spring-style six-field expressions (``sec min hour day month dow``)
as well as five-field crontab expressions, and runs at most one cycle at a
time: a tick that fires while a cycle is still running is dropped.
"""

import logging
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from registry_reconciler.constants import LOG_SCHEDULER_STARTED, LOG_SCHEDULER_STOPPED
from registry_reconciler.errors import ConfigurationError
from registry_reconciler.reconciler import ReconciliationEngine

logger = logging.getLogger(__name__)

JOB_ID = "reconciliation-cycle"
CRON_FIELD_NAMES = ("second", "minute", "hour", "day", "month", "day_of_week")


def _spring_day_to_aps(day: int) -> int:
    # Spring/crontab: 0 and 7 are Sunday; APScheduler: 0 is Monday, 6 is Sunday
    if not 0 <= day <= 7:
        raise ConfigurationError(f"Invalid day of week: {day}")
    return (day + 6) % 7


def _translate_day_of_week_token(token: str) -> str:
    base, sep, step = token.partition("/")
    if base.isdigit():
        return f"{_spring_day_to_aps(int(base))}{sep}{step}"
    start, dash, end = base.partition("-")
    if dash and start.isdigit() and end.isdigit():
        first, last = _spring_day_to_aps(int(start)), _spring_day_to_aps(int(end))
        if first <= last:
            return f"{first}-{last}{sep}{step}"
        if sep:
            raise ConfigurationError(f"Unsupported day of week range with step: {token}")
        # a range starting on Sunday wraps around Monday-based numbering
        return f"{first},0-{last}"
    return token.lower()


def translate_day_of_week(field: str) -> str:
    return ",".join(_translate_day_of_week_token(t) for t in field.split(","))


def cron_fields(expression: str) -> Dict[str, str]:
    """Split a cron expression into APScheduler CronTrigger keyword arguments"""
    parts = expression.split()
    if len(parts) == 5:
        parts = ["0"] + parts
    if len(parts) != 6:
        raise ConfigurationError(
            f"Cron expression must have 5 or 6 fields, got {len(parts)}: '{expression}'"
        )
    fields = dict(zip(CRON_FIELD_NAMES, (p.replace("?", "*") for p in parts)))
    fields["day_of_week"] = translate_day_of_week(fields["day_of_week"])
    return fields


def build_trigger(expression: str, timezone=None) -> CronTrigger:
    try:
        return CronTrigger(timezone=timezone, **cron_fields(expression))
    except ValueError as e:
        raise ConfigurationError(f"Invalid cron expression '{expression}': {e}") from e


class CycleScheduler:
    """Fires the reconciliation engine on a cron schedule"""

    def __init__(self, engine: ReconciliationEngine, cron_expression: str, timezone=None):
        self._engine = engine
        self._cron_expression = cron_expression
        self._trigger = build_trigger(cron_expression, timezone)
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def next_run_time(self):
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def start(self) -> None:
        """Start the scheduler on the running event loop"""
        if self.running:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick,
            trigger=self._trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(LOG_SCHEDULER_STARTED.format(self._cron_expression))

    def stop(self) -> None:
        if not self.running:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info(LOG_SCHEDULER_STOPPED)

    async def _tick(self) -> None:
        logger.debug("Running scheduled reconciliation")
        await self._engine.try_run_cycle()
