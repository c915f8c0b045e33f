"""
Service layer for calculation chains.

Every node in the ``calculations`` table is either a starting number
(``parent_id`` and ``operation`` are NULL, ``operand`` equals
``result``) or the result of applying ``operation`` with ``operand`` to
its parent's result.  Nodes are never updated or deleted, so the
stored ``result`` is always consistent with the parent chain.

The public forest view is rebuilt from a single ordered scan of the
table on every request.  Do not replace ``list_forest`` with per-node
child lookups; the number of queries must stay constant in the number
of nodes.
"""

from __future__ import annotations

import logging
import math
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends

from ..core.db import Database, get_db
from ..core.exceptions import AuthError, InternalError, NotFoundError, ValidationError
from ..schemas.calculation import OPERATIONS, CalculationRead, CalculationTree

logger = logging.getLogger(__name__)

_SELECT_NODES = """
    SELECT c.id, c.user_id, u.username, c.parent_id, c.operation,
           c.operand, c.result, c.created_at
    FROM calculations c
    JOIN users u ON c.user_id = u.id
"""


def calculate(left: float, operation: str, right: float) -> float:
    """Apply ``operation`` to ``left`` and ``right`` with float semantics.

    Raises ``ValidationError`` for an unknown operation or a division
    by zero; a zero divisor is rejected rather than producing NaN or
    Infinity.
    """
    if operation == "add":
        return left + right
    if operation == "subtract":
        return left - right
    if operation == "multiply":
        return left * right
    if operation == "divide":
        if right == 0:
            raise ValidationError("Division by zero is not allowed")
        return left / right
    raise ValidationError(f"Unknown operation: {operation}")


def build_forest(nodes: List[CalculationRead]) -> List[CalculationTree]:
    """Assemble parent/child trees from nodes in creation order.

    Two passes over the same list: the first maps each id to a copy
    with an empty ``children`` list, the second attaches every node to
    its parent.  Because both passes follow the input order, roots and
    each ``children`` list stay in creation order.  A node whose parent
    is not among ``nodes`` is dropped from the output.
    """
    node_map: Dict[str, CalculationTree] = {
        node.id: CalculationTree(**node.model_dump()) for node in nodes
    }
    roots: List[CalculationTree] = []
    for node in nodes:
        current = node_map[node.id]
        if node.parent_id is None:
            roots.append(current)
            continue
        parent = node_map.get(node.parent_id)
        if parent is not None:
            parent.children.append(current)
    return roots


class CalculationService:
    """Create calculation nodes and read them back as a list or a forest."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_root(self, user_id: str, number: float) -> CalculationRead:
        """Store a starting number owned by ``user_id``."""
        if not math.isfinite(number):
            raise ValidationError("A valid number is required")

        conn = self.db.get_connection()
        try:
            user = conn.execute(
                "SELECT username FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if user is None:
            raise AuthError("User no longer exists")

        node = self._insert(user_id, user["username"], None, None, number, number)
        logger.info("User %s started chain %s with %s", user_id, node.id, number)
        return node

    def apply_operation(
        self, user_id: str, parent_id: str, operation: str, operand: float
    ) -> CalculationRead:
        """Append ``operation operand`` to the node ``parent_id``.

        Input is validated before the store is touched: unknown
        operations, non-finite operands and division by zero raise
        ``ValidationError``.  A missing parent raises ``NotFoundError``.
        """
        if operation not in OPERATIONS:
            raise ValidationError(f"Unknown operation: {operation}")
        if not math.isfinite(operand):
            raise ValidationError("A valid operand number is required")
        if operation == "divide" and operand == 0:
            raise ValidationError("Division by zero is not allowed")

        conn = self.db.get_connection()
        try:
            parent = conn.execute(
                """
                SELECT c.result, (SELECT username FROM users WHERE id = ?) AS username
                FROM calculations c
                WHERE c.id = ?
                """,
                (user_id, parent_id),
            ).fetchone()
        finally:
            conn.close()
        if parent is None:
            raise NotFoundError("Parent calculation not found")
        if parent["username"] is None:
            raise AuthError("User no longer exists")

        result = calculate(parent["result"], operation, operand)
        if not math.isfinite(result):
            raise ValidationError("Result is out of range")
        node = self._insert(user_id, parent["username"], parent_id, operation, operand, result)
        logger.info(
            "User %s added %s %s to %s -> %s (%s)",
            user_id, operation, operand, parent_id, result, node.id,
        )
        return node

    def list_flat(self) -> List[CalculationRead]:
        """Return every node, oldest first, in a single query."""
        conn = self.db.get_connection()
        try:
            rows = conn.execute(
                _SELECT_NODES + " ORDER BY c.created_at ASC, c.rowid ASC"
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_calculation(row) for row in rows]

    def list_forest(self) -> List[CalculationTree]:
        """Return the root nodes with their descendants nested under ``children``."""
        return build_forest(self.list_flat())

    def get_by_id(self, calculation_id: str) -> Optional[CalculationRead]:
        """Retrieve a single node by ID, without children."""
        conn = self.db.get_connection()
        try:
            row = conn.execute(
                _SELECT_NODES + " WHERE c.id = ?",
                (calculation_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return self._row_to_calculation(row)

    def _insert(
        self,
        user_id: str,
        username: str,
        parent_id: Optional[str],
        operation: Optional[str],
        operand: float,
        result: float,
    ) -> CalculationRead:
        node = CalculationRead(
            id=str(uuid.uuid4()),
            user_id=user_id,
            username=username,
            parent_id=parent_id,
            operation=operation,
            operand=operand,
            result=result,
            created_at=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
        )
        conn = self.db.get_connection()
        try:
            conn.execute(
                """
                INSERT INTO calculations (id, user_id, parent_id, operation, operand, result, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    node.id,
                    node.user_id,
                    node.parent_id,
                    node.operation,
                    node.operand,
                    node.result,
                    node.created_at,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            logger.error("Could not store calculation %s for user %s: %s", node.id, user_id, e)
            raise InternalError("Could not store calculation")
        finally:
            conn.close()
        return node

    @staticmethod
    def _row_to_calculation(row: sqlite3.Row) -> CalculationRead:
        """Convert a database row to a ``CalculationRead`` instance."""
        return CalculationRead(
            id=row["id"],
            user_id=row["user_id"],
            username=row["username"],
            parent_id=row["parent_id"],
            operation=row["operation"],
            operand=row["operand"],
            result=row["result"],
            created_at=row["created_at"],
        )


def get_calculation_service(db: Database = Depends(get_db)) -> CalculationService:
    """FastAPI dependency building a ``CalculationService`` for the current app."""
    return CalculationService(db)
