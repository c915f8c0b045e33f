"""Tests for arithmetic, node creation and forest assembly."""

from datetime import datetime

import pytest

from calc_chain_api.app.core.exceptions import AuthError, NotFoundError, ValidationError
from calc_chain_api.app.schemas.calculation import CalculationRead
from calc_chain_api.app.services import calculation_service as calculation_module
from calc_chain_api.app.services.calculation_service import build_forest, calculate


# --- calculate ---

@pytest.mark.parametrize(
    "left, operation, right, expected",
    [
        (10, "add", 5, 15),
        (-5, "add", 3, -2),
        (10, "subtract", 5, 5),
        (5, "subtract", 10, -5),
        (10, "multiply", 5, 50),
        (-5, "multiply", 3, -15),
        (10, "divide", 2, 5),
        (7, "divide", 2, 3.5),
        (-10, "divide", 2, -5),
    ],
)
def test_calculate_matches_float_arithmetic(left, operation, right, expected):
    assert calculate(left, operation, right) == expected


def test_calculate_keeps_float_rounding():
    assert calculate(0.1, "add", 0.2) == 0.1 + 0.2
    assert calculate(1, "divide", 3) == 1 / 3


def test_calculate_rejects_division_by_zero():
    with pytest.raises(ValidationError, match="Division by zero is not allowed"):
        calculate(10, "divide", 0)


def test_calculate_rejects_unknown_operation():
    with pytest.raises(ValidationError, match="Unknown operation: modulo"):
        calculate(10, "modulo", 5)


# --- create_root ---

def test_create_root(calculation_service, alice):
    _, user = alice
    node = calculation_service.create_root(user.id, 10)
    assert node.parent_id is None
    assert node.operation is None
    assert node.operand == node.result == 10
    assert node.user_id == user.id
    assert node.username == "alice"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_create_root_rejects_non_finite(calculation_service, alice, value):
    _, user = alice
    with pytest.raises(ValidationError):
        calculation_service.create_root(user.id, value)


def test_create_root_for_unknown_user(calculation_service):
    with pytest.raises(AuthError):
        calculation_service.create_root("no-such-user", 1)


def test_created_node_matches_stored_row(calculation_service, alice):
    _, user = alice
    node = calculation_service.create_root(user.id, 4.25)
    assert calculation_service.get_by_id(node.id) == node


def test_created_at_always_has_microseconds(calculation_service, alice, monkeypatch):
    class FrozenDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return datetime(2024, 1, 1, 12, 0, 0, tzinfo=tz)

    monkeypatch.setattr(calculation_module, "datetime", FrozenDatetime)
    _, user = alice
    root = calculation_service.create_root(user.id, 1)
    child = calculation_service.apply_operation(user.id, root.id, "add", 1)
    assert root.created_at == child.created_at == "2024-01-01T12:00:00.000000+00:00"


# --- apply_operation ---

def test_apply_operation_uses_parent_result(calculation_service, alice):
    _, user = alice
    root = calculation_service.create_root(user.id, 10)
    child = calculation_service.apply_operation(user.id, root.id, "multiply", 5)
    assert child.parent_id == root.id
    assert child.operation == "multiply"
    assert child.operand == 5
    assert child.result == 50

    grandchild = calculation_service.apply_operation(user.id, child.id, "divide", 4)
    assert grandchild.result == calculate(50, "divide", 4) == 12.5


def test_apply_operation_unknown_parent(calculation_service, alice):
    _, user = alice
    with pytest.raises(NotFoundError):
        calculation_service.apply_operation(user.id, "nonexistent-id", "add", 1)


@pytest.mark.parametrize("zero", [0, 0.0, -0.0])
def test_divide_by_zero_rejected_before_store_access(calculation_service, db, alice, zero):
    _, user = alice
    root = calculation_service.create_root(user.id, 10)
    db.reset()
    with pytest.raises(ValidationError, match="Division by zero"):
        calculation_service.apply_operation(user.id, root.id, "divide", zero)
    assert db.connections == 0


def test_apply_operation_rejects_bad_input(calculation_service, db, alice):
    _, user = alice
    root = calculation_service.create_root(user.id, 10)
    db.reset()
    with pytest.raises(ValidationError):
        calculation_service.apply_operation(user.id, root.id, "power", 2)
    with pytest.raises(ValidationError):
        calculation_service.apply_operation(user.id, root.id, "add", float("nan"))
    assert db.connections == 0


def test_apply_operation_rejects_overflow(calculation_service, alice):
    _, user = alice
    root = calculation_service.create_root(user.id, 1e308)
    with pytest.raises(ValidationError, match="out of range"):
        calculation_service.apply_operation(user.id, root.id, "multiply", 10)
    assert len(calculation_service.list_flat()) == 1


def test_apply_operation_is_one_read_then_one_insert(calculation_service, db, alice):
    _, user = alice
    root = calculation_service.create_root(user.id, 3)
    db.reset()
    calculation_service.apply_operation(user.id, root.id, "add", 1)
    statements = [s.lstrip().split()[0].upper() for s in db.statements]
    assert statements.count("SELECT") == 1
    assert statements.count("INSERT") == 1
    assert statements.index("SELECT") < statements.index("INSERT")


# --- listing ---

def _walk(nodes):
    for node in nodes:
        yield node
        yield from _walk(node.children)


def _build_sample(service, user_id):
    a = service.create_root(user_id, 1)
    b = service.create_root(user_id, 100)
    a1 = service.apply_operation(user_id, a.id, "add", 1)
    a2 = service.apply_operation(user_id, a.id, "subtract", 1)
    a1x = service.apply_operation(user_id, a1.id, "multiply", 3)
    b1 = service.apply_operation(user_id, b.id, "divide", 8)
    return a, b, a1, a2, a1x, b1


def test_list_flat_is_creation_ordered(calculation_service, alice):
    _, user = alice
    created = _build_sample(calculation_service, user.id)
    assert [n.id for n in calculation_service.list_flat()] == [n.id for n in created]


def test_list_forest_structure(calculation_service, alice):
    _, user = alice
    a, b, a1, a2, a1x, b1 = _build_sample(calculation_service, user.id)
    forest = calculation_service.list_forest()

    assert [root.id for root in forest] == [a.id, b.id]
    assert [c.id for c in forest[0].children] == [a1.id, a2.id]
    assert [c.id for c in forest[0].children[0].children] == [a1x.id]
    assert forest[0].children[0].children[0].result == 6
    assert forest[0].children[1].children == []
    assert [c.id for c in forest[1].children] == [b1.id]
    assert forest[1].children[0].result == 12.5


def test_list_forest_covers_every_node_once(calculation_service, alice):
    _, user = alice
    _build_sample(calculation_service, user.id)
    flat_ids = [n.id for n in calculation_service.list_flat()]
    tree_ids = [n.id for n in _walk(calculation_service.list_forest())]
    assert len(tree_ids) == len(set(tree_ids))
    assert set(tree_ids) == set(flat_ids)


def test_list_forest_is_repeatable(calculation_service, alice):
    _, user = alice
    _build_sample(calculation_service, user.id)
    first = [t.model_dump() for t in calculation_service.list_forest()]
    second = [t.model_dump() for t in calculation_service.list_forest()]
    assert first == second


def test_list_forest_issues_a_single_query(calculation_service, db, alice):
    _, user = alice
    root = calculation_service.create_root(user.id, 1)
    parent = root
    for _ in range(20):
        parent = calculation_service.apply_operation(user.id, parent.id, "add", 1)
    db.reset()

    forest = calculation_service.list_forest()

    assert db.connections == 1
    assert len(db.selects) == 1
    assert len(list(_walk(forest))) == 21


def test_list_forest_empty(calculation_service):
    assert calculation_service.list_forest() == []
    assert calculation_service.list_flat() == []


def test_get_by_id_missing(calculation_service):
    assert calculation_service.get_by_id("missing") is None


# --- build_forest on hand-built input ---

def _node(node_id, parent_id=None, operation=None):
    return CalculationRead(
        id=node_id,
        user_id="u1",
        username="alice",
        parent_id=parent_id,
        operation=operation,
        operand=1,
        result=1,
        created_at="2024-01-01T00:00:00+00:00",
    )


def test_build_forest_drops_orphans():
    nodes = [
        _node("root"),
        _node("orphan", parent_id="gone", operation="add"),
        _node("orphan-child", parent_id="orphan", operation="add"),
        _node("child", parent_id="root", operation="add"),
    ]
    forest = build_forest(nodes)
    assert [r.id for r in forest] == ["root"]
    assert [c.id for c in forest[0].children] == ["child"]


def test_build_forest_does_not_mutate_input():
    nodes = [_node("root"), _node("child", parent_id="root", operation="add")]
    build_forest(nodes)
    assert not hasattr(nodes[0], "children")
