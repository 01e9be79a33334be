import numpy as np

from . import distmath
from .distributions import normal_samples_from_ci, pert_samples, resample
from .errors import (
    ArgumentCountError, ArgumentRangeError, ArgumentTypeError, ArrayLengthMismatchError,
    CircularDependencyError, DependencyError, UnknownFunctionError, UnknownIdentifierError,
)
from .nodes import (
    BinaryOp, CellIdentifier, FunctionCall, NumberLiteral, RangeExpression, UnaryOp,
)


def _require_scalars(function, values):
    for value in values:
        if distmath.is_samples(value):
            raise ArgumentTypeError(
                f"Arguments of '{function}' must evaluate to numbers, not distributions")


class Evaluator:
    """
    Walks a formula AST and produces a float or a numpy sample array.

    cells maps cell ids to Cell objects. Referenced cells that are stale are
    reevaluated on the way, sharing the in_progress set so that a reference
    back to a cell already on the stack is reported as circular.
    """

    def __init__(self, cells, config, rng=None):
        self.cells = cells
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()
        self.functions = {
            'pert': self._pert,
            'array': self._array,
        }

    @property
    def sample_count(self):
        return self.config.sample_count

    def evaluate(self, node, in_progress=None):
        if in_progress is None:
            in_progress = set()

        if isinstance(node, NumberLiteral):
            return float(node.value)

        if isinstance(node, RangeExpression):
            left = self.evaluate(node.left, in_progress)
            right = self.evaluate(node.right, in_progress)
            _require_scalars("to", (left, right))
            return normal_samples_from_ci(min(left, right), max(left, right),
                                          self.sample_count, self.rng)

        if isinstance(node, FunctionCall):
            handler = self.functions.get(node.name.lower())
            if handler is None:
                raise UnknownFunctionError(node.name)
            args = [self.evaluate(arg, in_progress) for arg in node.args]
            return handler(args)

        if isinstance(node, CellIdentifier):
            return self._reference(node.name, in_progress)

        if isinstance(node, BinaryOp):
            left = self.evaluate(node.left, in_progress)
            right = self.evaluate(node.right, in_progress)
            return distmath.binary_operation(node.operator, left, right, self.sample_count)

        if isinstance(node, UnaryOp):
            operand = self.evaluate(node.operand, in_progress)
            return distmath.unary_operation(node.operator, operand, self.sample_count)

        raise TypeError(f"Unknown AST node {node!r}")

    def _reference(self, name, in_progress):
        if name in in_progress:
            raise CircularDependencyError(name)
        cell = self.cells.get(name)
        if cell is None:
            raise UnknownIdentifierError(name)

        in_progress.add(name)
        try:
            if cell.is_stale:
                cell.reevaluate(self.cells, in_progress)
            if cell.error_state is not None:
                raise DependencyError(name, cell.error_cause)
            if cell.samples is not None:
                if cell.samples.size not in (0, self.sample_count):
                    raise ArrayLengthMismatchError(
                        f"Cell '{name}' has {cell.samples.size} samples, "
                        f"expected {self.sample_count}",
                        lengths=(cell.samples.size, self.sample_count))
                # callers must never see the cached array change under them
                return cell.samples.copy()
            return cell.value
        finally:
            in_progress.discard(name)

    # ----------------------------
    # Built-in functions
    # ----------------------------

    def _pert(self, args):
        _require_scalars("pert", args)
        if len(args) == 2:
            minimum, maximum = args
            likely = (minimum + maximum) / 2.0
            lambda_ = 4.0
        elif len(args) == 3:
            minimum, likely, maximum = args
            lambda_ = 4.0
        elif len(args) == 4:
            minimum, likely, maximum, lambda_ = args
        else:
            raise ArgumentCountError("pert", len(args), "2, 3 or 4")

        if not (minimum <= likely <= maximum):
            raise ArgumentRangeError(
                f"PERT arguments must satisfy min <= likely <= max "
                f"(min={minimum:g}, likely={likely:g}, max={maximum:g})")
        if minimum == maximum:
            return float(minimum)
        return pert_samples(minimum, likely, maximum, self.sample_count, self.rng, lambda_)

    def _array(self, args):
        _require_scalars("array", args)
        return resample(args, self.sample_count, self.rng)
