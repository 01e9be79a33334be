import argparse
import logging
import sys

from .config import DEFAULT_DECIMALS, DEFAULT_SAMPLE_COUNT, SimulationConfig
from .errors import ConfigurationError
from .manager import CalculationManager


def parse_definition(text):
    """Split 'name = formula' into its two parts."""
    name, sep, formula = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Expected 'name = formula', got {text!r}")
    return name, formula.strip()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="probcells",
        description="Evaluate probability formula cells, e.g. "
                    "probcells \"cost = pert(10, 12, 20)\" \"total = cost * 3\"")
    parser.add_argument("definitions", nargs="+", metavar="NAME=FORMULA",
                        help="cell definitions, evaluated together")
    parser.add_argument("--samples", type=int, default=DEFAULT_SAMPLE_COUNT,
                        help="Monte Carlo samples per distribution (default: %(default)s)")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--decimals", type=int, default=DEFAULT_DECIMALS,
                        help="decimals shown in results (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log recalculation steps")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = SimulationConfig(args.samples, seed=args.seed, decimals=args.decimals)
        formulas = {}
        for text in args.definitions:
            name, formula = parse_definition(text)
            if name in formulas:
                raise ValueError(f"Cell {name!r} is defined more than once")
            formulas[name] = formula
    except (ConfigurationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    manager = CalculationManager(config)
    result = manager.sync(formulas)
    for cell_id, text in manager.summary().items():
        print(f"{cell_id}: {text}")
    return 0 if result.converged else 1


if __name__ == "__main__":
    sys.exit(main())
