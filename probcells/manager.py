import logging
from collections import namedtuple

from .cell import Cell
from .config import SimulationConfig

logger = logging.getLogger(__name__)

RecalculationResult = namedtuple("RecalculationResult", ["iterations", "converged", "changed"])


class CalculationManager:
    """
    Owns the cells of one document and keeps them consistent.

    Formulas are set by id; recalculate() then sweeps stale cells until a full
    pass changes nothing. The sweep count is capped at 2 * cells + 10 so that
    formulas which keep flipping cannot loop forever.
    """

    EXTRA_ITERATIONS = 10

    def __init__(self, config=None):
        self.config = config if config is not None else SimulationConfig()
        self.cells = {}
        self.config.add_listener(self._on_sample_count_changed)

    def __contains__(self, cell_id):
        return cell_id in self.cells

    def __iter__(self):
        return iter(self.cells.values())

    def __len__(self):
        return len(self.cells)

    # ----------------------------
    # Cell collection
    # ----------------------------

    def set_cell(self, cell_id, formula, display_name=None, recalculate=True):
        """Create or update a cell. Returns the recalculation result, if one ran."""
        self._define(cell_id, formula, display_name)
        if recalculate:
            return self.recalculate()
        return None

    def _define(self, cell_id, formula, display_name=None):
        cell = self.cells.get(cell_id)
        if cell is None:
            cell = Cell(cell_id, formula, self.config, display_name)
            self.cells[cell_id] = cell
            cell.attach(self.cells)
        else:
            cell.set_formula(formula, display_name)
        return cell

    def get_cell(self, cell_id):
        return self.cells.get(cell_id)

    def get_cell_value(self, cell_id):
        """The cell's scalar value, or its samples for a distribution."""
        cell = self.cells.get(cell_id)
        if cell is None:
            return None
        if cell.samples is not None:
            return cell.samples.copy()
        return cell.value

    def get_cell_formula(self, cell_id):
        cell = self.cells.get(cell_id)
        if cell is None:
            return ""
        return cell.raw_formula

    def remove_cell(self, cell_id, recalculate=True):
        cell = self.cells.pop(cell_id, None)
        if cell is None:
            return None
        cell.detach(self.cells)
        if recalculate:
            return self.recalculate()
        return None

    def clear(self):
        for cell in list(self.cells.values()):
            cell.detach(self.cells)
        self.cells.clear()

    def close(self):
        """Drop all cells and stop listening to the shared config."""
        self.clear()
        self.config.remove_listener(self._on_sample_count_changed)

    def sync(self, formulas, display_names=None):
        """
        Make the sheet match a mapping of cell id to formula text.

        Cells missing from the mapping are removed, new ones are created, and
        the sheet is recalculated once at the end.
        """
        display_names = display_names or {}
        for cell_id in [cid for cid in self.cells if cid not in formulas]:
            logger.debug("Pruning cell %s", cell_id)
            self.cells.pop(cell_id).detach(self.cells)
        for cell_id, formula in formulas.items():
            self._define(cell_id, formula, display_names.get(cell_id))
        return self.recalculate()

    # ----------------------------
    # Sample count
    # ----------------------------

    def set_sample_count(self, sample_count):
        self.config.update_sample_count(sample_count)
        return self.recalculate()

    def _on_sample_count_changed(self, old, new):
        logger.debug("Sample count changed from %d to %d", old, new)
        for cell in self.cells.values():
            cell.invalidate_samples()

    # ----------------------------
    # Fixpoint driver
    # ----------------------------

    def recalculate(self):
        cells = self.cells
        for cell in cells.values():
            cell.begin_cycle()
        order = self._evaluation_order()
        start_versions = {cell_id: cell.version for cell_id, cell in cells.items()}

        limit = 2 * len(cells) + self.EXTRA_ITERATIONS
        iterations = 0
        converged = False
        while iterations < limit:
            iterations += 1
            changed = False
            for cell_id in order:
                cell = cells[cell_id]
                if cell.is_stale and cell.reevaluate(cells):
                    changed = True
            if not changed and not any(cell.needs_reevaluation for cell in cells.values()):
                converged = True
                break

        if not converged:
            logger.warning("Calculation stopped after %d iterations without settling; "
                           "possible circular or unstable formulas", iterations)
        changed_ids = frozenset(cell_id for cell_id, cell in cells.items()
                                if cell.version != start_versions.get(cell_id, 0))
        logger.debug("Recalculated %d cells in %d iteration(s)", len(cells), iterations)
        return RecalculationResult(iterations, converged, changed_ids)

    def _evaluation_order(self):
        """
        Cell ids with dependencies ahead of their dependents.

        Sweeping in this order means a reference rarely has to reevaluate
        another cell on the way, so long chains do not nest evaluations.
        Cycles are cut wherever the walk first meets a visited cell.
        """
        cells = self.cells
        for cell in cells.values():
            cell.prepare(cells)

        order = []
        visited = set()
        for root in cells:
            if root in visited:
                continue
            visited.add(root)
            stack = [(root, iter(sorted(cells[root].dependencies)))]
            while stack:
                cell_id, pending = stack[-1]
                for dep_id in pending:
                    if dep_id in cells and dep_id not in visited:
                        visited.add(dep_id)
                        stack.append((dep_id, iter(sorted(cells[dep_id].dependencies))))
                        break
                else:
                    stack.pop()
                    order.append(cell_id)
        return order

    def summary(self, decimals=None):
        return {cell_id: cell.describe(decimals) for cell_id, cell in self.cells.items()}
