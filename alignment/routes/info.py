"""Info route -- describes the engine's inputs and derived quantities.

GET /api/info lets the front end build its form from the server's input
list instead of hard-coding it: every raw input with its default, and every
derived quantity with the names it reads.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from alignment.geometry.engine import (
    DIMENSION_DEFAULTS,
    FORMULAS,
    INPUT_NAMES,
)
from alignment.models import EngineInfo, QuantityInfo

router = APIRouter(prefix="/api", tags=["info"])


@router.get("/info", response_model=EngineInfo, response_model_by_alias=True)
async def get_info(request: Request) -> EngineInfo:
    """Return the quantity catalogue of the running engine.

    Response fields
    ---------------
    version : str
        Application version string sourced from the FastAPI app metadata.
    inputs : list
        Raw inputs in form order.  ``default`` is null for readings, which
        start unset.
    derived : list
        Derived quantities in evaluation order, with their direct inputs.
    """
    return EngineInfo(
        version=request.app.version,
        inputs=[
            QuantityInfo(name=name, unit="mm", default=DIMENSION_DEFAULTS.get(name))
            for name in INPUT_NAMES
        ],
        derived=[
            QuantityInfo(name=node.name, unit=node.unit, inputs=list(node.inputs))
            for node in FORMULAS
        ],
    )
