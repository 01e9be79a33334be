"""Exceptions raised while parsing and evaluating cell formulas."""


class ProbcellsError(Exception):
    """Base exception for all probcells errors"""
    pass


class ConfigurationError(ProbcellsError):
    """Invalid simulation setting"""
    pass


class FormulaError(ProbcellsError):
    """
    Error attached to a cell while evaluating its formula.

    dependency_class tells the cell how to settle: local errors clear the
    cell's output, dependency errors keep the last settled output.
    """
    dependency_class = False

    @property
    def cause(self):
        """Root message reported to cells downstream of this one."""
        return str(self)


# ----------------------------
# Local errors: the cell's own formula is at fault
# ----------------------------

class ParseError(FormulaError):
    """Malformed formula text"""
    def __init__(self, message, fragment=None, position=None):
        super().__init__(message)
        self.fragment = fragment
        self.position = position


class EmptyFormulaError(ParseError):
    """Formula is empty or whitespace only"""
    def __init__(self):
        super().__init__("Formula cannot be empty.", fragment="")


class UnknownFunctionError(FormulaError):
    def __init__(self, name):
        super().__init__(f"Unknown function '{name}'")
        self.name = name


class ArgumentCountError(FormulaError):
    def __init__(self, function, count, expected):
        super().__init__(
            f"Function '{function}' called with {count} argument(s); expected {expected}")
        self.function = function
        self.count = count


class ArgumentRangeError(FormulaError):
    """Argument values violate the function's constraints (e.g. PERT ordering)"""
    pass


class ArgumentTypeError(FormulaError):
    """A scalar was required but a sample array was given"""
    pass


class DivisionByZeroError(FormulaError):
    def __init__(self):
        super().__init__("Division by zero")


class ArrayLengthMismatchError(FormulaError):
    def __init__(self, message, lengths=None):
        super().__init__(message)
        self.lengths = lengths


class UnknownOperatorError(FormulaError):
    def __init__(self, operator):
        super().__init__(f"Unknown operator '{operator}'")
        self.operator = operator


# ----------------------------
# Dependency errors: an upstream cell is at fault
# ----------------------------

class UnknownIdentifierError(FormulaError):
    dependency_class = True

    def __init__(self, name):
        super().__init__(f"Unknown cell identifier '{name}'")
        self.name = name


class CircularDependencyError(FormulaError):
    dependency_class = True

    def __init__(self, name):
        super().__init__(f"Circular dependency detected involving cell '{name}'")
        self.name = name


class DependencyError(FormulaError):
    """A referenced cell currently carries an error"""
    dependency_class = True

    def __init__(self, name, upstream_cause):
        super().__init__(f"Dependency '{name}' has an error: {upstream_cause}")
        self.name = name
        self.upstream_cause = upstream_cause

    @property
    def cause(self):
        return self.upstream_cause
