import enum
import logging

import numpy as np

from .errors import FormulaError, ParseError
from .evaluator import Evaluator
from .nodes import FunctionCall, RangeExpression, dependencies
from .parser import parse
from .stats import EMPTY_CI, ConfidenceInterval, HistogramBin, calculate_stats, histogram

logger = logging.getLogger(__name__)


class CellType(enum.Enum):
    CONSTANT = "constant"
    PERT = "pert"
    NORMAL = "normal"
    DATA_ARRAY = "data_array"
    FORMULA_RESULT = "formula_result"

    @property
    def is_distribution(self):
        return self is not CellType.CONSTANT


class CellStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    VALID = "valid"
    LOCAL_ERROR = "local_error"
    DEPENDENCY_ERROR = "dependency_error"


def _same(a, b):
    if a == b:
        return True
    # NaN results must not count as a change on every pass
    return isinstance(a, float) and isinstance(b, float) and a != a and b != b


def _distribution_type(ast):
    if isinstance(ast, FunctionCall):
        name = ast.name.lower()
        if name == 'pert':
            return CellType.PERT
        if name == 'array':
            return CellType.DATA_ARRAY
    if isinstance(ast, RangeExpression):
        return CellType.NORMAL
    return CellType.FORMULA_RESULT


class Cell:
    """
    One named formula and its latest result.

    A cell is either a constant (value is a float, samples is None) or a
    distribution (samples is a float array of length 0 or the sample count,
    value is None). On a local error both are cleared; on a dependency error
    the previous result is kept as is.

    dependencies and dependents hold cell ids and are only written by the
    linking methods below, which always update both ends of an edge.
    """

    def __init__(self, cell_id, formula, config, display_name=None):
        self.id = cell_id
        self.display_name = display_name or cell_id
        self.raw_formula = formula
        self.config = config
        self.ast = None

        self.cell_type = None
        self.value = None
        self.samples = None
        self.mean = None
        self.ci = EMPTY_CI
        self._histogram = None

        self.dependencies = set()
        self.dependents = set()

        self.error_state = None
        self.error_cause = None
        self.is_dependency_error = False

        self.needs_reevaluation = True
        self.processed_this_cycle = False
        self.version = 0
        self._settled = False

    def __repr__(self):
        return f"Cell({self.id!r}, {self.raw_formula!r}, status={self.status.value})"

    # ----------------------------
    # State
    # ----------------------------

    @property
    def status(self):
        if self.error_state is not None:
            if self.is_dependency_error:
                return CellStatus.DEPENDENCY_ERROR
            return CellStatus.LOCAL_ERROR
        if not self._settled:
            return CellStatus.UNINITIALIZED
        return CellStatus.VALID

    @property
    def is_stale(self):
        return self.needs_reevaluation or not self.processed_this_cycle

    @property
    def histogram_data(self):
        """Histogram bins of the current result, computed on first access."""
        if self._histogram is None:
            if self.samples is not None:
                self._histogram = histogram(self.samples, self.config.histogram_bin_count)
            elif self.value is not None:
                self._histogram = [HistogramBin(self.value, self.value, 1)]
            else:
                self._histogram = []
        return self._histogram

    def set_formula(self, formula, display_name=None):
        """Replace the formula text. Returns True if it differs from the current one."""
        if display_name:
            self.display_name = display_name
        if formula == self.raw_formula:
            return False
        self.raw_formula = formula
        self.ast = None
        self.needs_reevaluation = True
        return True

    def mark_stale(self):
        self.needs_reevaluation = True

    def begin_cycle(self):
        self.processed_this_cycle = False

    def invalidate_samples(self):
        """Drop distribution samples after the sample count changed."""
        if self.samples is not None:
            self.samples = np.array([], dtype=float)
            self.mean = None
            self.ci = EMPTY_CI
        self._histogram = None
        self.needs_reevaluation = True

    # ----------------------------
    # Dependency links
    # ----------------------------

    def _relink(self, new_ids, cells):
        for dep_id in self.dependencies - new_ids:
            other = cells.get(dep_id)
            if other is not None:
                other.dependents.discard(self.id)
        for dep_id in new_ids:
            other = cells.get(dep_id)
            if other is not None:
                other.dependents.add(self.id)
        self.dependencies = set(new_ids)

    def attach(self, cells):
        """Link a newly added cell to cells that already reference it."""
        for other in cells.values():
            if other is not self and self.id in other.dependencies:
                self.dependents.add(other.id)
                other.mark_stale()
        self._relink(self.dependencies, cells)

    def detach(self, cells):
        """Unlink a cell that is being removed and mark its dependents stale."""
        self._relink(set(), cells)
        for dependent_id in self.dependents:
            other = cells.get(dependent_id)
            if other is not None:
                other.mark_stale()
        self.dependents = set()

    def prepare(self, cells):
        """Parse the formula and link its dependencies without evaluating it."""
        if self.ast is None:
            try:
                self.ast = parse(self.raw_formula)
            except ParseError:
                # reevaluate() parses again and records the error on the cell
                return
        self._relink(dependencies(self.ast), cells)

    def _invalidate_dependents(self, cells, in_progress):
        for dependent_id in self.dependents:
            # cells further up the evaluation stack read the fresh result anyway
            if dependent_id in in_progress:
                continue
            other = cells.get(dependent_id)
            if other is not None:
                other.mark_stale()

    # ----------------------------
    # Evaluation
    # ----------------------------

    def _snapshot(self):
        return (
            self.error_state,
            self.is_dependency_error,
            self.cell_type,
            self.value,
            self.mean,
            self.ci.lower,
            self.ci.upper,
            None if self.samples is None else self.samples.size,
        )

    def reevaluate(self, cells, in_progress=None):
        """
        Parse and evaluate the formula against cells, then settle.

        in_progress is the set of ids on the current evaluation stack; top-level
        callers leave it out. Returns True if the observable result changed.
        """
        if in_progress is None:
            in_progress = {self.id}
        self.needs_reevaluation = False
        self.processed_this_cycle = True
        self._histogram = None
        before = self._snapshot()

        try:
            if self.ast is None:
                self.ast = parse(self.raw_formula)
            self._relink(dependencies(self.ast), cells)
            rng = self.config.generator_for(self.id, self.raw_formula)
            result = Evaluator(cells, self.config, rng).evaluate(self.ast, in_progress)
        except FormulaError as exc:
            if self.ast is None:
                self._relink(set(), cells)
            self._set_error(str(exc), exc.cause, exc.dependency_class)
        except (ArithmeticError, ValueError) as exc:
            self._set_error(f"Calculation failed: {exc}", None, False)
        except RecursionError:
            self._set_error("Formula or reference chain too deep to evaluate", None, False)
        else:
            self._set_result(result)

        changed = not all(_same(a, b) for a, b in zip(before, self._snapshot()))
        if changed:
            self.version += 1
            logger.debug("Cell %s settled as %s", self.id, self.status.value)
            self._invalidate_dependents(cells, in_progress)
        return changed

    def _set_result(self, result):
        self.error_state = None
        self.error_cause = None
        self.is_dependency_error = False
        self._settled = True
        if isinstance(result, np.ndarray):
            self.cell_type = _distribution_type(self.ast)
            self.value = None
            self.samples = result
            stats = calculate_stats(np.sort(result))
            self.mean = stats.mean
            self.ci = stats.ci
        else:
            self.cell_type = CellType.CONSTANT
            self.value = float(result)
            self.samples = None
            self.mean = self.value
            self.ci = ConfidenceInterval(self.value, self.value)

    def _set_error(self, message, cause, dependency_class):
        self.error_state = message
        self.error_cause = cause if cause is not None else message
        self.is_dependency_error = dependency_class
        if not dependency_class:
            self.cell_type = None
            self.value = None
            self.samples = None
            self.mean = None
            self.ci = EMPTY_CI

    # ----------------------------
    # Display
    # ----------------------------

    def describe(self, decimals=None):
        """Short text summary of the result, e.g. '12.500 (9.100 to 15.800)'."""
        if decimals is None:
            decimals = self.config.decimals
        if self.error_state is not None:
            return f"Error: {self.error_state}"
        if self.cell_type is None:
            return ""
        if self.cell_type is CellType.CONSTANT:
            return f"{self.value:.{decimals}f}"
        if self.mean is None:
            return "(no samples)"
        return (f"{self.mean:.{decimals}f} "
                f"({self.ci.lower:.{decimals}f} to {self.ci.upper:.{decimals}f})")
