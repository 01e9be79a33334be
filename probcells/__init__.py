"""
probcells

Named formula cells that resolve to scalars or Monte Carlo sample arrays,
kept consistent by a dependency-aware recalculation engine.
"""

from .cell import Cell, CellStatus, CellType
from .config import SimulationConfig
from .errors import FormulaError, ParseError
from .manager import CalculationManager, RecalculationResult
from .parser import parse
from .stats import calculate_stats, histogram

__version__ = "0.1.0"
__all__ = [
    "CalculationManager",
    "Cell",
    "CellStatus",
    "CellType",
    "FormulaError",
    "ParseError",
    "RecalculationResult",
    "SimulationConfig",
    "calculate_stats",
    "histogram",
    "parse",
]
