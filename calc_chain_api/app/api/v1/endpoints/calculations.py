"""
Calculation endpoints for API v1.

Reading is public: anyone can list the forest of calculation chains or
fetch a single node.  Posting a starting number or appending an
operation requires a Bearer token; the new node is owned by the token's
user.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from calc_chain_api.app.core.security import get_current_user
from calc_chain_api.app.schemas.calculation import (
    CalculationRead,
    CalculationTree,
    OperationCreate,
    StartNumberCreate,
)
from calc_chain_api.app.services.calculation_service import (
    CalculationService,
    get_calculation_service,
)

router = APIRouter()


@router.get("", response_model=List[CalculationTree])
async def list_calculation_trees(
    service: CalculationService = Depends(get_calculation_service),
) -> List[CalculationTree]:
    """Return every starting number with its operations nested under ``children``.

    Roots and children are ordered oldest first.
    """
    return service.list_forest()


@router.get("/flat", response_model=List[CalculationRead])
async def list_calculations(
    service: CalculationService = Depends(get_calculation_service),
) -> List[CalculationRead]:
    """Return all nodes as a flat list ordered by creation time."""
    return service.list_flat()


@router.get("/{calculation_id}", response_model=CalculationRead)
async def get_calculation(
    calculation_id: str,
    service: CalculationService = Depends(get_calculation_service),
) -> CalculationRead:
    """Retrieve a single node by ID.  Returns HTTP 404 if it does not exist."""
    calculation = service.get_by_id(calculation_id)
    if calculation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Calculation not found")
    return calculation


@router.post("/start", response_model=CalculationRead, status_code=status.HTTP_201_CREATED)
async def create_starting_number(
    payload: StartNumberCreate,
    current_user: Dict[str, str] = Depends(get_current_user),
    service: CalculationService = Depends(get_calculation_service),
) -> CalculationRead:
    """Post a new starting number."""
    return service.create_root(current_user["userId"], payload.number)


@router.post("/operate", response_model=CalculationRead, status_code=status.HTTP_201_CREATED)
async def create_operation(
    payload: OperationCreate,
    current_user: Dict[str, str] = Depends(get_current_user),
    service: CalculationService = Depends(get_calculation_service),
) -> CalculationRead:
    """Apply an operation to an existing node.

    Dividing by zero is rejected with HTTP 400; an unknown ``parentId``
    yields HTTP 404.
    """
    return service.apply_operation(
        current_user["userId"],
        payload.parent_id,
        payload.operation,
        payload.operand,
    )
