import sys
import os
import json
import logging
import argparse
from calc.projection_calculator import build_calculator
from calc.report_window import WINDOW_OPTIONS
from render.renderers import RENDERER_REGISTRY, parse_year_range


def load_spec(program_name: str) -> dict:
    """Read input-parameters/<program_name>/spec.json.

    Raises:
        FileNotFoundError: if the program has no spec.json
    """
    spec_path = os.path.join(os.path.dirname(__file__), '../input-parameters', program_name, 'spec.json')
    if not os.path.exists(spec_path):
        raise FileNotFoundError(f"Spec file not found: {spec_path}")
    with open(spec_path, 'r') as f:
        return json.load(f)


def parse_window(value: str):
    """argparse type for --window: a year count from WINDOW_OPTIONS or 'max'."""
    if value == 'max':
        return value
    try:
        years = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"window must be one of {', '.join(str(w) for w in WINDOW_OPTIONS)}")
    if years not in WINDOW_OPTIONS:
        raise argparse.ArgumentTypeError(f"window must be one of {', '.join(str(w) for w in WINDOW_OPTIONS)}")
    return years


def main():
    parser = argparse.ArgumentParser(
        description='ABLE account planner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  Summary     Print assumptions, contribution limits, totals and messages (default)
  Schedule    Print the year-by-year ABLE account schedule
  Comparison  Print ABLE versus taxable account balances
  Benefits    Print Saver's Credit and state benefits by year
  Csv         Write the monthly schedule as CSV

Examples:
  python src/Program.py example
  python src/Program.py example --mode Schedule
  python src/Program.py example --mode Comparison --window 10
  python src/Program.py example --mode Schedule --years 2027-2030
  python src/Program.py example --mode Csv > schedule.csv
        """
    )
    parser.add_argument('program_name', help='Name of the program (folder in input-parameters)')
    parser.add_argument('--mode', '-m',
                        choices=list(RENDERER_REGISTRY.keys()),
                        default='Summary',
                        help='Output mode (default: Summary)')
    parser.add_argument('--window', '-w',
                        type=parse_window,
                        default='max',
                        help='Report window in years: 3, 10, 20, 40 or max (default)')
    parser.add_argument('--years', '-y',
                        help='Year or year range to display, e.g. 2027 or 2027-2030')
    parser.add_argument('--verbose', '-v',
                        action='store_true',
                        help='Log reference-data fallbacks and calculation details')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        spec = load_spec(args.program_name)
    except FileNotFoundError as e:
        print(e)
        sys.exit(1)

    calculator = build_calculator()
    result = calculator.calculate(spec, report_window=args.window)

    start_year, end_year = None, None
    if args.years:
        try:
            start_year, end_year = parse_year_range(args.years, result)
        except ValueError:
            parser.error(f"invalid year range: {args.years}")

    renderer = RENDERER_REGISTRY[args.mode](start_year, end_year)
    renderer.render(result)


if __name__ == "__main__":
    main()
