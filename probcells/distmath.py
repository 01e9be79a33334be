"""
Elementwise arithmetic over scalars and sample arrays.

Arrays pair positionally: sample i of the left operand meets sample i of the
right one. Sorted generator output therefore combines as perfectly correlated
draws, which is the intended behaviour for cells built from one another.
"""
import numpy as np

from .errors import ArrayLengthMismatchError, DivisionByZeroError, UnknownOperatorError

BINARY_OPERATORS = {
    '+': np.add,
    '-': np.subtract,
    '*': np.multiply,
    '/': np.true_divide,
    '^': np.power,
}


def is_samples(value):
    return isinstance(value, np.ndarray)


def _check_length(samples, sample_count, side):
    if samples.size != sample_count:
        raise ArrayLengthMismatchError(
            f"{side} operand has {samples.size} samples, expected {sample_count}",
            lengths=(samples.size, sample_count))


def binary_operation(operator, left, right, sample_count):
    func = BINARY_OPERATORS.get(operator)
    if func is None:
        raise UnknownOperatorError(operator)

    left_is_array = is_samples(left)
    right_is_array = is_samples(right)
    if left_is_array and right_is_array:
        if left.size != sample_count or right.size != sample_count:
            raise ArrayLengthMismatchError(
                f"Array operands have {left.size} and {right.size} samples, "
                f"expected {sample_count}",
                lengths=(left.size, right.size))
    elif left_is_array:
        _check_length(left, sample_count, "Left")
    elif right_is_array:
        _check_length(right, sample_count, "Right")

    if operator == '/' and np.any(np.asarray(right) == 0):
        raise DivisionByZeroError()

    with np.errstate(over='ignore', invalid='ignore'):
        result = func(np.asarray(left, dtype=float), np.asarray(right, dtype=float))
    if left_is_array or right_is_array:
        return result
    return float(result)


def unary_operation(operator, operand, sample_count):
    if operator != '-':
        raise UnknownOperatorError(operator)
    if is_samples(operand):
        _check_length(operand, sample_count, "Unary")
        return np.negative(operand)
    return -float(operand)
