# AST node classes produced by the formula parser.
# The set is closed: the evaluator and dependency walker handle exactly these six.
from dataclasses import dataclass
from typing import Tuple


class Node:
    __slots__ = ()


@dataclass(frozen=True)
class NumberLiteral(Node):
    value: float


# Reference to another cell by id (e.g. Revenue)
@dataclass(frozen=True)
class CellIdentifier(Node):
    name: str


# "X to Y": normal distribution with a 90% CI of [X, Y]
@dataclass(frozen=True)
class RangeExpression(Node):
    left: Node
    right: Node


@dataclass(frozen=True)
class FunctionCall(Node):
    name: str
    args: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class BinaryOp(Node):
    operator: str  # one of + - * / ^
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryOp(Node):
    operator: str  # only "-"
    operand: Node


def dependencies(node):
    """Return the set of cell ids referenced anywhere in the tree."""
    found = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, CellIdentifier):
            found.add(current.name)
        elif isinstance(current, (RangeExpression, BinaryOp)):
            stack.append(current.left)
            stack.append(current.right)
        elif isinstance(current, UnaryOp):
            stack.append(current.operand)
        elif isinstance(current, FunctionCall):
            stack.extend(current.args)
    return found
