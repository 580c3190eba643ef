"""Tests for the projection renderers."""

import datetime
import json
import os
import sys
from io import StringIO

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from calc.projection_calculator import build_calculator
from model.field_metadata import wrap_header
from render.renderers import (
    SummaryRenderer,
    ScheduleRenderer,
    ComparisonRenderer,
    BenefitsRenderer,
    CsvRenderer,
    format_multiline_headers,
    parse_year_range,
    RENDERER_REGISTRY,
)

# Path to test fixtures
FIXTURES_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'mcp_server_tests', 'fixtures'))

TODAY = datetime.date(2026, 10, 19)


def load_fixture_spec(program_name: str = 'testprogram') -> dict:
    with open(os.path.join(FIXTURES_PATH, program_name, 'spec.json'), 'r') as f:
        return json.load(f)


@pytest.fixture(scope="module")
def calculator():
    return build_calculator()


@pytest.fixture(scope="module")
def plan_data(calculator):
    """Ten year projection from Jan 2027."""
    return calculator.calculate(load_fixture_spec(), TODAY)


def render_to_string(renderer, data) -> str:
    output = StringIO()
    old_stdout = sys.stdout
    sys.stdout = output
    try:
        renderer.render(data)
    finally:
        sys.stdout = old_stdout
    return output.getvalue()


class TestParseYearRange:
    """Test the parse_year_range helper function."""

    def test_parse_single_year(self, plan_data):
        assert parse_year_range("2030", plan_data) == (2030, 2030)

    def test_parse_full_range(self, plan_data):
        assert parse_year_range("2028-2032", plan_data) == (2028, 2032)

    def test_parse_open_start_range(self, plan_data):
        assert parse_year_range("-2030", plan_data) == (2027, 2030)

    def test_parse_open_end_range(self, plan_data):
        assert parse_year_range("2030-", plan_data) == (2030, 2036)

    def test_parse_full_open_range(self, plan_data):
        assert parse_year_range("-", plan_data) == (2027, 2036)


class TestHeaders:
    """Test multi-line header formatting."""

    def test_wrap_header(self):
        assert wrap_header("Earnings", 14) == ["Earnings"]
        assert wrap_header("Taxable Ending Balance", 10) == ["Taxable", "Ending", "Balance"]

    def test_short_headers_use_one_line(self):
        lines, sep = format_multiline_headers([("Earnings", 10)])
        assert len(lines) == 1
        assert lines[0].startswith("  Year")
        assert sep == "  ------ ----------"

    def test_long_headers_pad_from_top(self):
        lines, _ = format_multiline_headers([("Earnings", 10), ("Taxable Balance", 10)])
        assert len(lines) == 2
        # Year label sits on the last line, next to the data
        assert lines[0].strip() == "Taxable"
        assert lines[1].split() == ["Year", "Earnings", "Balance"]


class TestSummaryRenderer:
    def test_sections(self, plan_data):
        result = render_to_string(SummaryRenderer(), plan_data)
        assert "ABLE PLAN SUMMARY" in result
        assert "CONTRIBUTION LIMITS" in result
        assert "SAVER'S CREDIT" in result
        assert "TOTALS (10 YEARS)" in result
        assert "Saver's Credit:" in result
        assert "Jan 2027" in result
        assert "Dec 2036" in result

    def test_no_messages_section_when_clean(self, plan_data):
        assert "MESSAGES" not in render_to_string(SummaryRenderer(), plan_data)

    def test_messages_are_rendered(self, calculator):
        spec = load_fixture_spec()
        spec['annualReturn'] = 0
        spec['account']['startingBalance'] = 549000
        data = calculator.calculate(spec, TODAY)
        result = render_to_string(SummaryRenderer(), data)
        assert "MESSAGES" in result
        assert "Contributions stop in Feb 2027 when the balance reaches the plan maximum." in result

    def test_pending_dialogue_note(self, calculator):
        spec = load_fixture_spec()
        spec['account']['monthlyContribution'] = 2500
        spec['account']['monthlyContributionFuture'] = 2500
        result = render_to_string(SummaryRenderer(), calculator.calculate(spec, TODAY))
        assert "projected at the base limit" in result
        assert "initialPrompt" in result


class TestScheduleRenderer:
    def test_all_years_in_window(self, plan_data):
        result = render_to_string(ScheduleRenderer(), plan_data)
        assert "ABLE ACCOUNT SCHEDULE" in result
        assert "  2027 " in result
        assert "  2036 " in result
        assert "6,000.00" in result

    def test_year_range(self, plan_data):
        result = render_to_string(ScheduleRenderer(start_year=2029, end_year=2030), plan_data)
        assert "  2029 " in result
        assert "  2030 " in result
        assert "  2028 " not in result
        assert "  2031 " not in result

    def test_report_window_limits_rows(self, calculator):
        data = calculator.calculate(load_fixture_spec(), TODAY, report_window=3)
        result = render_to_string(ScheduleRenderer(), data)
        assert "  2029 " in result
        assert "  2030 " not in result


class TestComparisonRenderer:
    def test_difference_is_positive(self, plan_data):
        result = render_to_string(ComparisonRenderer(), plan_data)
        assert "ABLE VS TAXABLE" in result
        last = [line for line in result.splitlines() if line.startswith("  2036 ")][0]
        amounts = [float(part.replace(',', '')) for part in last.replace('$', ' ').split()[1:]]
        ending, _, tax, taxable_ending, diff = amounts
        assert tax > 0
        assert diff == pytest.approx(ending - taxable_ending, abs=0.01)
        assert diff > 0


class TestBenefitsRenderer:
    def test_totals(self, plan_data):
        result = render_to_string(BenefitsRenderer(), plan_data)
        assert "TAX BENEFITS" in result
        # 1000 of Saver's Credit for each of the ten years
        assert "Total" in result
        assert "10,000.00" in result


class TestCsvRenderer:
    def test_rows(self, plan_data):
        rows = CsvRenderer().rows(plan_data)
        assert rows[0] == CsvRenderer.HEADER
        assert len(rows) == 121
        assert rows[1][0] == "Jan 2027"
        assert rows[1][1] == "500.00"
        assert rows[12][4] == "1000.00"
        assert rows[1][8] == ""

    def test_year_range_and_stream(self, plan_data):
        stream = StringIO()
        CsvRenderer(start_year=2030, end_year=2030, stream=stream).render(plan_data)
        lines = stream.getvalue().splitlines()
        assert len(lines) == 13
        assert lines[1].startswith("Jan 2030,")
        assert lines[-1].startswith("Dec 2030,")


def test_registry():
    assert set(RENDERER_REGISTRY) == {'Summary', 'Schedule', 'Comparison', 'Benefits', 'Csv'}
    assert RENDERER_REGISTRY['Csv'] is CsvRenderer
