#!/usr/bin/env python3
"""Interactive command shell for querying ABLE plan projections.

This module provides an interactive shell that loads a plan at startup
and allows querying any field(s) from the yearly schedule across a
specified date range. It also walks through the Work to ABLE questions
when planned contributions exceed the annual limit.

Usage:
    python src/shell.py [program_name]

Commands:
    get <fields> [year_or_range]  - Query fields from yearly data
    fields                        - List all available fields
    years                         - Show available year range
    render <mode> [year_or_range] - Render a report
    window <years|max>            - Change the report window
    contribute <monthly> [pct]    - Change the monthly contribution
    status                        - Show the contribution limit status
    explore yes|no                - Answer the Work to ABLE prompt
    income <amount>|none          - Answer the earned income question
    retirement yes|no             - Answer the employer retirement plan question
    dismiss                       - Acknowledge the contribution adjustment
    restart                       - Start the Work to ABLE questions over
    load <program_name>           - Load a plan
    help                          - Show help message
    exit/quit                     - Exit the shell

Examples:
    > get ending_balance
    > get contribution, earnings 2027-2030
    > get ending_balance, taxable_ending_balance 2030-
    > contribute 2500 3
    > load example
"""

import sys
import os
import cmd
import readline

# Configure readline for tab completion
try:
    # For Unix/Linux/macOS - use libedit or GNU readline
    if 'libedit' in readline.__doc__:
        # macOS libedit
        readline.parse_and_bind("bind ^I rl_complete")
    else:
        # GNU readline (Linux)
        readline.parse_and_bind("tab: complete")
except (AttributeError, TypeError):
    pass  # readline might not be fully available

# Add src directory to path for imports
sys.path.insert(0, os.path.dirname(__file__))

from calc.projection_calculator import ProjectionCalculator, build_calculator
from calc.report_window import WINDOW_OPTIONS, aggregate_window
from model.IncentiveState import (
    IncentiveMode,
    ExploreIncentive,
    EarnedIncomeAnswered,
    RetirementPlanAnswered,
    NoticeDismissed,
    Restart,
)
from model.ProjectionResult import ProjectionResult
from model.field_metadata import FIELD_METADATA, get_short_name, get_description
from render.renderers import RENDERER_REGISTRY, MESSAGE_TEXT, parse_year_range
from Program import load_spec


YEAR_FIELDS = ["contribution", "withdrawal", "earnings", "credit_amount",
               "state_benefit_amount", "ending_balance"]
TAXABLE_FIELDS = ["taxable_earnings", "taxable_tax", "taxable_ending_balance"]
BALANCE_FIELDS = ("ending_balance", "taxable_ending_balance")

PROMPTS = {
    IncentiveMode.INITIAL_PROMPT: "Your planned contributions exceed the annual limit. Explore Work to ABLE? (explore yes|no)",
    IncentiveMode.INCOME_QUESTION: "Does the beneficiary have earned income? (income <amount>|none), then (retirement yes|no)",
    IncentiveMode.NO_PATH: "Contributions were reduced to the annual limit.",
    IncentiveMode.COMBINED_LIMIT: "Contributions were reduced to the combined Work to ABLE limit.",
}


def load_plan(program_name: str, calculator: ProjectionCalculator = None) -> ProjectionResult:
    """Load and calculate the projection for the given program.

    Args:
        program_name: Name of the program folder in input-parameters
        calculator: Calculator to use (built from reference/ if omitted)

    Returns:
        Calculated ProjectionResult
    """
    spec = load_spec(program_name)
    return (calculator or build_calculator()).calculate(spec)


def get_yearly_fields() -> list:
    """Field names the 'get' command accepts."""
    return YEAR_FIELDS + TAXABLE_FIELDS


def year_values(result: ProjectionResult, year: int) -> dict:
    """Values of every queryable field for one year, or {} if not projected."""
    row = result.get_year(year)
    if row is None:
        return {}
    values = {name: getattr(row, name) for name in YEAR_FIELDS}
    taxable = result.get_taxable_year(year)
    if taxable is not None:
        values["taxable_earnings"] = taxable.earnings
        values["taxable_tax"] = taxable.federal_tax + taxable.state_tax
        values["taxable_ending_balance"] = taxable.ending_balance
    return values


def format_value(value) -> str:
    """Format a value for display."""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    elif isinstance(value, float):
        if value == 0:
            return "$0.00"
        return f"${value:,.2f}"
    elif isinstance(value, int):
        return str(value)
    elif value is None:
        return "-"
    else:
        return str(value)


def parse_yes_no(arg: str):
    """True for yes/y, False for no/n, None otherwise."""
    value = arg.strip().lower()
    if value in ('yes', 'y'):
        return True
    if value in ('no', 'n'):
        return False
    return None


class AblePlanShell(cmd.Cmd):
    """Interactive shell for querying ABLE plan projections."""

    intro = """
ABLE Plan Interactive Shell
===========================
Type 'help' for available commands.
Type 'fields' to see available data fields.
Type 'exit' or 'quit' to exit.
"""
    prompt = '> '

    def __init__(self, program_name: str = None, calculator: ProjectionCalculator = None):
        super().__init__()
        self.calculator = calculator or build_calculator()
        self.available_fields = get_yearly_fields()
        self.program_name = None
        self.spec = None
        self.result = None
        self.report_window = "max"
        if program_name:
            self._load(program_name)
        self._update_intro()

    def preloop(self):
        """Set up readline before entering the command loop."""
        try:
            readline.set_completer_delims(' \t\n,')
            if 'libedit' in (readline.__doc__ or ''):
                readline.parse_and_bind("bind ^I rl_complete")
            else:
                readline.parse_and_bind("tab: complete")
        except (AttributeError, TypeError):
            pass  # readline might not be fully available

    def _get_available_programs(self) -> list:
        """Get list of available program names from input-parameters directory."""
        input_params_dir = os.path.join(os.path.dirname(__file__), '../input-parameters')
        programs = []
        if os.path.exists(input_params_dir):
            for item in sorted(os.listdir(input_params_dir)):
                if os.path.isdir(os.path.join(input_params_dir, item)):
                    programs.append(item)
        return programs

    def _update_intro(self):
        """Update the intro message based on current state."""
        if self.result and self.program_name:
            self.intro = f"""
ABLE Plan Interactive Shell
===========================
Program: {self.program_name}
Years: {self.result.first_year} - {self.result.last_year}
Plan state: {self.result.plan_state_code}

Type 'help' for available commands.
Type 'fields' to see available data fields.
Type 'exit' or 'quit' to exit.
"""
        else:
            self.intro = """
ABLE Plan Interactive Shell
===========================
No plan loaded. Use 'load <program_name>' to get started.

Type 'help' for available commands.
Type 'exit' or 'quit' to exit.
"""

    def _require_plan(self) -> bool:
        """Check if a plan is loaded. Returns True if loaded, False otherwise."""
        if self.result is None:
            print("No plan loaded. Use 'load <program_name>' first.")
            return False
        return True

    def _load(self, program_name: str):
        self.spec = load_spec(program_name)
        self.program_name = program_name
        self.result = self.calculator.calculate(self.spec, report_window=self.report_window)
        self._sync_contributions()

    def _recalculate(self, incentive=None):
        """Recalculate the projection, continuing from the given dialogue state."""
        self.result = self.calculator.calculate(
            self.spec, report_window=self.report_window,
            incentive=incentive if incentive is not None else self.result.incentive)
        self._sync_contributions()
        self._show_prompt()

    def _sync_contributions(self, plan=None):
        """Keep the spec's contributions in step with any automatic adjustment."""
        plan = plan or self.result.incentive.plan
        account = self.spec.setdefault('account', {})
        account['monthlyContribution'] = plan.monthly_current_year
        account['monthlyContributionFuture'] = plan.monthly_future_years

    def _show_prompt(self):
        state = self.result.incentive
        text = PROMPTS.get(state.mode)
        if text and not state.dismissed:
            print(text)
        if self.result.resolution_pending:
            print("Contributions are projected at the base limit until the questions are answered.")

    def _dispatch(self, event):
        if not self._require_plan():
            return
        state = self.calculator.flow.transition(self.result.incentive, event)
        self._sync_contributions(state.plan)
        self._recalculate(state)
        self.do_status('')

    def do_get(self, arg: str):
        """Query field(s) from yearly data.

        Usage: get <fields> [year_or_range]

        Arguments:
            fields        - Comma-separated list of field names
            year_or_range - Optional: single year (2027) or range (2027-2030)
                            If range end is omitted (2027-), runs to the last projected year

        Examples:
            get ending_balance
            get contribution, earnings 2027-2030
            get ending_balance, taxable_ending_balance 2030-
        """
        if not self._require_plan():
            return

        if not arg.strip():
            print("Error: Please specify at least one field to query.")
            print("Usage: get <fields> [year_or_range]")
            print("Example: get ending_balance 2027-2030")
            return

        parts = arg.strip().split()
        year_range = None
        field_parts = parts

        # Last part may be a year or year range
        potential_range = parts[-1]
        if potential_range[0].isdigit() or potential_range.startswith('-'):
            try:
                year_range = parse_year_range(potential_range, self.result)
                field_parts = parts[:-1]
            except ValueError:
                pass  # Not a valid year range, treat as field name

        fields_str = ' '.join(field_parts)
        field_names = [f.strip() for f in fields_str.split(',') if f.strip()]

        if not field_names:
            print("Error: No valid field names provided.")
            return

        invalid_fields = [f for f in field_names if f not in self.available_fields]
        if invalid_fields:
            print(f"Error: Unknown field(s): {', '.join(invalid_fields)}")
            print("Use 'fields' command to see available field names.")
            return

        first_year, last_year = year_range if year_range else (self.result.first_year, self.result.last_year)

        if first_year > last_year:
            print(f"Error: First year ({first_year}) cannot be greater than last year ({last_year})")
            return

        if first_year < self.result.first_year or last_year > self.result.last_year:
            print(f"Warning: Requested range extends beyond plan data ({self.result.first_year}-{self.result.last_year})")

        header = ["Year"] + [get_short_name(f) for f in field_names]
        col_widths = [max(len(str(header[i])), 6) for i in range(len(header))]

        rows = []
        totals = {f: 0.0 for f in field_names}
        for year in range(first_year, last_year + 1):
            values = year_values(self.result, year)
            if not values:
                continue
            row = [str(year)]
            for field_name in field_names:
                value = values.get(field_name)
                row.append(format_value(value))
                if isinstance(value, (int, float)):
                    totals[field_name] += value
            rows.append(row)
            for i, cell in enumerate(row):
                col_widths[i] = max(col_widths[i], len(cell))

        if not rows:
            print(f"No data available for years {first_year}-{last_year}")
            return

        header_line = "  ".join(h.rjust(col_widths[i]) for i, h in enumerate(header))
        print()
        print(header_line)
        print("-" * len(header_line))
        for row in rows:
            print("  ".join(cell.rjust(col_widths[i]) for i, cell in enumerate(row)))

        # Balances are point-in-time values, so they get no total
        if len(rows) > 1:
            print("-" * len(header_line))
            total_row = ["Total"] + [
                "-" if f in BALANCE_FIELDS else format_value(totals[f]) for f in field_names
            ]
            print("  ".join(cell.rjust(col_widths[i]) for i, cell in enumerate(total_row)))
        print()

    def do_fields(self, arg: str):
        """List all available fields that can be queried.

        Usage: fields [field_name]
        """
        if arg.strip():
            field_name = arg.strip()
            if field_name not in self.available_fields:
                print(f"Error: Unknown field '{field_name}'")
                print("Use 'fields' without arguments to see all available fields.")
                return
            info = FIELD_METADATA.get(field_name)
            print(f"\n{field_name}:")
            print(f"  Short name: {info.short_name}")
            print(f"  Description: {info.description}")
            print()
            return

        print("\nAvailable fields:")
        print("=" * 70)
        categories = {
            "ABLE Account": YEAR_FIELDS,
            "Taxable Comparison": TAXABLE_FIELDS,
        }
        for category, names in categories.items():
            print(f"\n{category}:")
            for name in names:
                print(f"  {name:<24} [{get_short_name(name):<16}] {get_description(name)}")
        print()

    def complete_fields(self, text, line, begidx, endidx):
        if not text:
            return self.available_fields
        text_lower = text.lower()
        return [f for f in self.available_fields if text_lower in f.lower()]

    def do_years(self, arg: str):
        """Show the projected year range and report window."""
        if not self._require_plan():
            return
        window = self.result.window
        print(f"\nProjection Range:")
        print(f"  First year: {self.result.first_year}")
        print(f"  Last year: {self.result.last_year}")
        print(f"  Horizon: {self.result.horizon_years} years ({self.result.horizon_source})")
        if window is not None:
            print(f"\nReport window: {window.years} of {window.max_years} selectable years")
        ending = self.result.ending_value
        if ending is not None and ending.depletion_eligible:
            print(f"  Account is depleted in {ending.depletion_label}")
        print()

    def do_window(self, arg: str):
        """Change the report window.

        Usage: window <3|10|20|40|max>
        """
        if not self._require_plan():
            return
        value = arg.strip() or "max"
        if value != "max":
            try:
                value = int(value)
            except ValueError:
                value = None
        if value not in WINDOW_OPTIONS:
            print(f"Window must be one of {', '.join(str(w) for w in WINDOW_OPTIONS)}")
            return
        self.report_window = value
        self.result = self.calculator.calculate(self.spec, report_window=value, incentive=self.result.incentive)
        print(f"Report window: {self.result.window.years} years")

    def do_render(self, arg: str):
        """Render a report for the loaded plan.

        Usage: render [mode] [year_or_range]
        """
        if not self._require_plan():
            return
        parts = arg.split()
        if not parts:
            print("\nAvailable render modes:")
            for mode in RENDERER_REGISTRY:
                print(f"  {mode}")
            print()
            return
        mode = parts[0]
        if mode not in RENDERER_REGISTRY:
            print(f"Unknown mode: {mode}")
            return
        start_year, end_year = None, None
        if len(parts) > 1:
            try:
                start_year, end_year = parse_year_range(parts[1], self.result)
            except ValueError:
                print(f"Error: Invalid year range '{parts[1]}'")
                return
        RENDERER_REGISTRY[mode](start_year, end_year).render(self.result)

    def complete_render(self, text, line, begidx, endidx):
        return [m for m in RENDERER_REGISTRY if m.startswith(text)]

    def do_summary(self, arg: str):
        """Show totals over the report window."""
        if not self._require_plan():
            return
        end = self.result.window.end_index
        able = aggregate_window(self.result.schedule, end)
        taxable = aggregate_window(self.result.taxable_schedule, end)
        print(f"\nSummary for '{self.program_name}' ({self.result.window.years} years):")
        print("=" * 40)
        print(f"Total Contributions:   {format_value(sum(y.contribution for y in able))}")
        print(f"Total Withdrawals:     {format_value(sum(y.withdrawal for y in able))}")
        print(f"Total Earnings:        {format_value(sum(y.earnings for y in able))}")
        print(f"Saver's Credit:        {format_value(sum(y.credit_amount for y in able))}")
        print(f"State Benefit:         {format_value(sum(y.state_benefit_amount for y in able))}")
        print()
        print("Ending Balances:")
        print(f"  ABLE:                {format_value(able[-1].ending_balance if able else 0.0)}")
        print(f"  Taxable:             {format_value(taxable[-1].ending_balance if taxable else 0.0)}")
        for message in self.result.messages:
            text = MESSAGE_TEXT.get(message.code.value, message.code.value)
            print(f"  {text.format(monthLabel=message.month_label)}")
        print()

    def do_contribute(self, arg: str):
        """Change the planned monthly contribution.

        Usage: contribute <monthly> [annual_increase_pct]
        """
        if not self._require_plan():
            return
        parts = arg.split()
        try:
            monthly = float(parts[0])
            pct = float(parts[1]) if len(parts) > 1 else None
        except (IndexError, ValueError):
            print("Usage: contribute <monthly> [annual_increase_pct]")
            return
        account = self.spec.setdefault('account', {})
        account['monthlyContribution'] = monthly
        account['monthlyContributionFuture'] = monthly
        if pct is not None:
            account['contributionIncreasePct'] = pct
        self._recalculate()
        print(f"Monthly contribution: {format_value(self.result.incentive.plan.monthly_future_years)}")

    def do_status(self, arg: str):
        """Show the contribution limit status."""
        if not self._require_plan():
            return
        status = self.calculator.limit_status(self.result)
        print("\nContribution Limits:")
        print(f"  Status:              {status['status']}")
        print(f"  Step:                {status['mode']}")
        print(f"  Applicable limit:    {format_value(float(status['applicableLimit']))}")
        if status['combinedLimit'] is not None:
            print(f"  Additional allowed:  {format_value(status['additionalAllowed'])}")
        print(f"  Auto-adjusted:       {format_value(status['autoAdjusted'])}")
        print()

    def do_explore(self, arg: str):
        """Answer the Work to ABLE prompt.

        Usage: explore yes|no
        """
        answer = parse_yes_no(arg)
        if answer is None:
            print("Usage: explore yes|no")
            return
        self._dispatch(ExploreIncentive(answer))

    def do_income(self, arg: str):
        """Answer the earned income question.

        Usage: income <annual_amount>|none
        """
        value = arg.strip().lower()
        if value in ('none', 'no', '0'):
            self._dispatch(EarnedIncomeAnswered(False))
            return
        try:
            amount = float(value.replace(',', '').lstrip('$'))
        except ValueError:
            print("Usage: income <annual_amount>|none")
            return
        self._dispatch(EarnedIncomeAnswered(True, amount))

    def do_retirement(self, arg: str):
        """Answer whether the beneficiary participates in an employer retirement plan.

        Usage: retirement yes|no
        """
        answer = parse_yes_no(arg)
        if answer is None:
            print("Usage: retirement yes|no")
            return
        self._dispatch(RetirementPlanAnswered(answer))

    def do_dismiss(self, arg: str):
        """Acknowledge the contribution adjustment notice."""
        self._dispatch(NoticeDismissed())

    def do_restart(self, arg: str):
        """Start the Work to ABLE questions over."""
        self._dispatch(Restart())

    def do_load(self, arg: str):
        """Load a plan.

        Usage: load <program_name>

        If no program name is given and a plan is already loaded, reloads it.
        """
        program_name = arg.strip() if arg.strip() else self.program_name

        if not program_name:
            print("Please specify a program name.")
            print("Available programs:")
            for item in self._get_available_programs():
                print(f"  - {item}")
            return

        try:
            print(f"Loading plan '{program_name}'...")
            self._load(program_name)
            print("Plan loaded successfully!")
            print(f"Years: {self.result.first_year} - {self.result.last_year}")
            self._show_prompt()
        except FileNotFoundError as e:
            print(f"Error: {e}")
        except (ValueError, KeyError) as e:
            print(f"Error loading plan: {e}")

    def do_exit(self, arg: str):
        """Exit the shell."""
        print("Goodbye!")
        return True

    def do_quit(self, arg: str):
        """Exit the shell."""
        return self.do_exit(arg)

    def do_EOF(self, arg: str):
        """Handle Ctrl+D to exit."""
        print()
        return self.do_exit(arg)

    def emptyline(self):
        """Do nothing on empty line."""
        pass

    def default(self, line: str):
        """Handle unknown commands."""
        print(f"Unknown command: {line}")
        print("Type 'help' for available commands.")

    def complete_get(self, text, line, begidx, endidx):
        if not text:
            return self.available_fields
        text_lower = text.lower()
        return [f for f in self.available_fields if text_lower in f.lower()]

    def complete_load(self, text, line, begidx, endidx):
        return [p for p in self._get_available_programs() if p.startswith(text)]


def main():
    program_name = sys.argv[1] if len(sys.argv) > 1 else None

    try:
        if program_name:
            print(f"Loading plan '{program_name}'...")
        shell = AblePlanShell(program_name)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    shell.cmdloop()


if __name__ == "__main__":
    main()
