"""
Pydantic schemas for calculation nodes.

A calculation node is either a starting number (no parent, no
operation) or the result of applying an operation to its parent's
result.  On the wire the fields use camelCase (``parentId``,
``createdAt``) while Python code uses snake_case; the alias generator
maps between the two.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OPERATIONS = ("add", "subtract", "multiply", "divide")


def _require_json_number(value, message: str):
    # bool is an int subclass; strings would otherwise be coerced
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(message)
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartNumberCreate(_CamelModel):
    """Request body for posting a starting number."""

    number: float = Field(..., examples=[10])

    @field_validator("number", mode="before")
    @classmethod
    def validate_number(cls, v):
        return _require_json_number(v, "A valid number is required")


class OperationCreate(_CamelModel):
    """Request body for appending an operation to an existing node."""

    parent_id: str = Field(..., min_length=1, description="Identifier of the node to operate on")
    operation: str = Field(..., examples=["multiply"])
    operand: float = Field(..., examples=[5])

    @field_validator("operation")
    @classmethod
    def validate_operation(cls, v: str) -> str:
        if v not in OPERATIONS:
            raise ValueError("Valid operation is required (add, subtract, multiply, divide)")
        return v

    @field_validator("operand", mode="before")
    @classmethod
    def validate_operand(cls, v):
        return _require_json_number(v, "A valid operand number is required")


class CalculationRead(_CamelModel):
    """A single calculation node as returned by the API."""

    id: str
    user_id: str
    username: str
    parent_id: Optional[str] = None
    operation: Optional[str] = None
    operand: float
    result: float
    created_at: str


class CalculationTree(CalculationRead):
    """A calculation node with its descendants attached, oldest first."""

    children: List[CalculationTree] = Field(default_factory=list)


CalculationTree.model_rebuild()
