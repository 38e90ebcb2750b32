from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from registry_reconciler.constants import (
    ERROR_CYCLE_IN_FLIGHT,
    ERROR_NO_CYCLE_YET,
    HTTP_CONFLICT,
    HTTP_NOT_FOUND,
)
from registry_reconciler.reconciler import ReconciliationEngine
from registry_reconciler.types import CycleReportResponse, ReconcilerSettings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


def get_settings(request: Request) -> ReconcilerSettings:
    return request.app.state.settings


@router.get("/cycles/last", response_model=CycleReportResponse)
async def get_last_cycle(engine: ReconciliationEngine = Depends(get_engine)):
    """Report of the most recently completed reconciliation cycle"""
    report = engine.last_report
    if report is None:
        raise HTTPException(status_code=HTTP_NOT_FOUND, detail=ERROR_NO_CYCLE_YET)
    return CycleReportResponse.from_report(report)


@router.post("/cycles", response_model=CycleReportResponse)
async def run_cycle(engine: ReconciliationEngine = Depends(get_engine)):
    """Run a reconciliation cycle now; refused while another one is running"""
    report = await engine.try_run_cycle()
    if report is None:
        raise HTTPException(status_code=HTTP_CONFLICT, detail=ERROR_CYCLE_IN_FLIGHT)
    logger.info(f"Manual reconciliation cycle {report.cycle_id} completed")
    return CycleReportResponse.from_report(report)


@router.get("/config")
async def get_config(settings: ReconcilerSettings = Depends(get_settings)):
    """Effective settings with passwords redacted"""
    return settings.redacted()
