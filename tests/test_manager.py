import logging

import numpy as np
import pytest

from probcells.cell import CellStatus
from probcells.config import SimulationConfig
from probcells.manager import CalculationManager


def test_set_cell_recalculates(manager):
    manager.set_cell("Price", "12")
    result = manager.set_cell("Total", "Price * 3")
    assert result.converged
    assert manager.get_cell_value("Total") == 36.0
    assert manager.get_cell_formula("Total") == "Price * 3"


def test_update_propagates_downstream(manager):
    manager.sync({"A": "1", "B": "A + 1", "C": "B * 10"})
    assert manager.get_cell_value("C") == 20.0
    result = manager.set_cell("A", "4")
    assert manager.get_cell_value("C") == 50.0
    assert result.changed == {"A", "B", "C"}


def test_cells_defined_out_of_order(manager):
    manager.set_cell("Total", "Unit * 2")
    assert manager.get_cell("Total").status is CellStatus.DEPENDENCY_ERROR
    manager.set_cell("Unit", "21")
    assert manager.get_cell("Total").status is CellStatus.VALID
    assert manager.get_cell_value("Total") == 42.0
    assert manager.get_cell("Unit").dependents == {"Total"}


def test_circular_reference_terminates(manager):
    result = manager.sync({"A": "B", "B": "A"})
    assert result.converged
    assert result.iterations <= 2 * len(manager) + manager.EXTRA_ITERATIONS
    for name in ("A", "B"):
        cell = manager.get_cell(name)
        assert cell.status is CellStatus.DEPENDENCY_ERROR
        assert "Circular" in cell.error_state


def test_breaking_a_cycle_recovers(manager):
    manager.sync({"A": "B + 1", "B": "A + 1"})
    manager.set_cell("B", "10")
    assert manager.get_cell("A").status is CellStatus.VALID
    assert manager.get_cell_value("A") == 11.0


def test_recovery_after_local_error(manager):
    manager.sync({"B": "pert(1, 2, 3)", "C": "B"})
    before = manager.get_cell("C").samples.copy()

    manager.set_cell("B", "pert(3, 2, 1)")
    b = manager.get_cell("B")
    c = manager.get_cell("C")
    assert b.status is CellStatus.LOCAL_ERROR
    assert b.samples is None
    assert c.status is CellStatus.DEPENDENCY_ERROR
    assert np.array_equal(c.samples, before)

    manager.set_cell("B", "pert(10, 20, 30)")
    assert c.status is CellStatus.VALID
    assert c.error_state is None
    assert c.mean == pytest.approx(20.0, abs=0.5)


def test_second_recalculation_changes_nothing(manager):
    manager.sync({"A": "pert(1, 2, 3)", "B": "10 to 20", "C": "A * B", "D": "array(1, 2, 3)"})
    snapshot = {cell.id: cell.samples.tobytes() for cell in manager}
    result = manager.recalculate()
    assert result.converged
    assert result.iterations == 1
    assert result.changed == frozenset()
    assert {cell.id: cell.samples.tobytes() for cell in manager} == snapshot


def test_sample_count_change_resizes_distributions():
    manager = CalculationManager(SimulationConfig(sample_count=5000, seed=5))
    manager.sync({
        "A": "pert(1, 2, 3)",
        "B": "1 to 9",
        "C": "array(4, 5)",
        "D": "A + B * C",
        "K": "7",
    })
    assert all(manager.get_cell(n).samples.size == 5000 for n in "ABCD")

    result = manager.set_sample_count(1000)
    assert result.converged
    assert all(manager.get_cell(n).samples.size == 1000 for n in "ABCD")
    assert manager.get_cell_value("K") == 7.0
    assert manager.config.histogram_bin_count == 13


def test_remove_cell_unlinks_and_marks_dependents(manager):
    manager.sync({"A": "2", "B": "A * 3", "C": "4"})
    manager.remove_cell("A")
    assert "A" not in manager
    b = manager.get_cell("B")
    assert b.status is CellStatus.DEPENDENCY_ERROR
    assert b.value == 6.0  # frozen
    assert "Unknown cell identifier" in b.error_state


def test_sync_prunes_missing_cells(manager):
    manager.sync({"A": "1", "B": "A + 1", "C": "5"})
    manager.sync({"B": "C + 1", "C": "5"})
    assert set(manager.cells) == {"B", "C"}
    assert manager.get_cell("C").dependents == {"B"}
    assert manager.get_cell_value("B") == 6.0


def test_display_names(manager):
    manager.sync({"rev": "100"}, display_names={"rev": "Revenue"})
    assert manager.get_cell("rev").display_name == "Revenue"


def test_summary_formats_cells(manager):
    manager.sync({"A": "2.5", "B": "1 / 0", "C": "pert(1, 2, 3)"})
    summary = manager.summary(decimals=2)
    assert summary["A"] == "2.50"
    assert summary["B"] == "Error: Division by zero"
    assert " to " in summary["C"]


def test_iteration_cap_is_reported(manager, caplog, monkeypatch):
    manager.sync({"A": "1"})
    cell = manager.get_cell("A")
    monkeypatch.setattr(type(cell), "reevaluate", lambda self, cells, in_progress=None: True)
    with caplog.at_level(logging.WARNING, logger="probcells.manager"):
        result = manager.recalculate()
    assert not result.converged
    assert result.iterations == 2 * 1 + manager.EXTRA_ITERATIONS
    assert "without settling" in caplog.text
    assert cell.value == 1.0


def test_long_chain_defined_downstream_first(manager):
    formulas = {f"c{i}": f"c{i - 1} + 1" for i in range(2000, 0, -1)}
    formulas["c0"] = "0"
    result = manager.sync(formulas)
    assert result.converged
    assert manager.get_cell_value("c2000") == 2000.0
    assert manager.get_cell("c2000").status is CellStatus.VALID


def test_deeply_nested_formula_is_local_error(manager):
    manager.sync({"A": "(" * 200 + "1" + ")" * 200, "B": "2"})
    a = manager.get_cell("A")
    assert a.status is CellStatus.LOCAL_ERROR
    assert "nested" in a.error_state
    assert manager.get_cell_value("B") == 2.0


def test_very_long_formula_is_local_error(manager):
    manager.sync({"A": " + ".join(["1"] * 3000), "B": "2"})
    a = manager.get_cell("A")
    assert a.status is CellStatus.LOCAL_ERROR
    assert "too deep" in a.error_state
    assert manager.get_cell_value("B") == 2.0


def test_clear_unlinks_cells(manager):
    manager.sync({"A": "1", "B": "A + 1"})
    a = manager.get_cell("A")
    manager.clear()
    assert len(manager) == 0
    assert a.dependents == set()


def test_close_stops_listening_to_config(config):
    manager = CalculationManager(config)
    manager.sync({"A": "pert(1, 2, 3)"})
    a = manager.get_cell("A")
    manager.close()
    other = CalculationManager(config)
    other.sync({"A": "pert(1, 2, 3)"})
    config.update_sample_count(500)
    assert a.samples.size == 1000
    assert not a.needs_reevaluation
    assert other.get_cell("A").needs_reevaluation
