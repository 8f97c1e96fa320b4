"""POST /api/compute -- stateless evaluation of one complete measurement set.

Used when the WebSocket is unavailable, or by clients that keep the form
state themselves.  Builds a throwaway engine, evaluates every derived
quantity and returns values, status and display text.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from alignment.display import build_result
from alignment.geometry.engine import GeometryEngine
from alignment.models import ComputeResult, MeasurementSet

logger = logging.getLogger("alignment.compute")

router = APIRouter(prefix="/api", tags=["compute"])


@router.post("/compute", response_model=ComputeResult)
async def compute(
    measurements: MeasurementSet,
    blank_unresolved: bool = False,
) -> ComputeResult:
    """Evaluate the derived-value graph for *measurements*.

    Readings omitted from the body stay unset; the quantities depending on
    them are returned as null with status ``unresolved``.  Pass
    ``?blank_unresolved=true`` to get empty display strings for those
    instead of ``0.00``.
    """
    try:
        engine = GeometryEngine.from_measurements(measurements.model_dump())
        return build_result(engine, blank_unresolved=blank_unresolved)
    except Exception as exc:
        logger.exception("Computation failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
