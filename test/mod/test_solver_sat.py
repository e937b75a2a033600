"""
Unit tests for the satisfiability core
"""

import pytest

from rpmresolve.solver.sat import Solver


def solve(nvars, clauses):
    solver = Solver(nvars)
    for clause in clauses:
        solver.add_clause(clause)
    return solver.solve()


@pytest.mark.parametrize("nvars,clauses,model", [
    pytest.param(2, [], set(), id="nothing-required"),
    pytest.param(2, [[-1, 2]], set(), id="implication-alone-selects-nothing"),
    pytest.param(2, [[1, 2]], {1}, id="prefers-lowest-variable"),
    pytest.param(2, [[2, 1]], {1}, id="literal-order-irrelevant"),
    pytest.param(2, [[-1], [1, 2]], {2}, id="unit-forces-alternative"),
    pytest.param(3, [[1], [-1, 2, 3]], {1, 2}, id="implied-choice-prefers-lowest"),
    pytest.param(3, [[1], [-1, 3], [-2, -3]], {1, 3}, id="chain"),
    pytest.param(2, [[1, -1]], set(), id="tautology"),
])
def test_satisfiable(nvars, clauses, model):
    res = solve(nvars, clauses)
    assert res.satisfiable
    assert res.model == model


def test_conflict_learning_falls_back_to_next_candidate():
    # choosing 1 forces both 3 and not 3
    res = solve(3, [[1, 2], [-1, 3], [-1, -3]])
    assert res.satisfiable
    assert res.model == {2}


def test_unsat_contradicting_units():
    res = solve(2, [[1], [1, 2], [-1]])
    assert not res.satisfiable
    assert res.core == [0, 2]


def test_unsat_empty_clause():
    res = solve(2, [[1, 2], []])
    assert not res.satisfiable
    assert res.core == [1]


def test_unsat_core_includes_learned_origins():
    res = solve(5, [[1, 2], [-1, 3], [-1, -3], [-2, 4], [-2, -4], [5]])
    assert not res.satisfiable
    assert res.core == [0, 1, 2, 3, 4]


def test_deterministic():
    clauses = [[1, 2, 3], [-1, 4], [-4], [-2, 5, 6], [-5, -6], [-3]]
    results = [solve(6, clauses).model for _ in range(5)]
    assert results[0] == {2, 5}
    assert all(r == results[0] for r in results)


@pytest.mark.parametrize("clause", [[0], [3], [-3]])
def test_invalid_literal(clause):
    with pytest.raises(ValueError):
        Solver(2).add_clause(clause)


def test_clause_ids():
    solver = Solver(2)
    assert solver.add_clause([1]) == 0
    assert solver.add_clause([1, -1]) == 1
    assert solver.add_clause([2, 2]) == 2
    assert solver.clauses[2] == [2]
