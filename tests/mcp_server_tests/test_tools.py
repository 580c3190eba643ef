"""Tests for the MCP server tools module."""

import os
import sys
import json
import shutil
import tempfile
import pytest

# Add src and mcp-server to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../src')))
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../mcp-server')))

from tools import AblePlannerTools, MultiProgramTools


# Path to test fixtures
FIXTURES_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), 'fixtures'))

# Path to the project root (for reference files)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '../..'))


@pytest.fixture(scope="module")
def test_base_path():
    """Create a temporary directory structure for testing.

    This creates a temp directory with the required structure:
    - input-parameters/testprogram/spec.json (from fixtures)
    - reference/*.json (symlinked from project)
    """
    temp_dir = tempfile.mkdtemp()

    input_params_dir = os.path.join(temp_dir, 'input-parameters')
    os.makedirs(input_params_dir)
    shutil.copytree(
        os.path.join(FIXTURES_PATH, 'testprogram'),
        os.path.join(input_params_dir, 'testprogram')
    )

    os.symlink(
        os.path.join(PROJECT_ROOT, 'reference'),
        os.path.join(temp_dir, 'reference')
    )

    yield temp_dir

    shutil.rmtree(temp_dir, ignore_errors=True)


class TestAblePlannerTools:
    """Tests for AblePlannerTools class."""

    @pytest.fixture
    def tools(self, test_base_path):
        return AblePlannerTools(test_base_path, 'testprogram')

    def test_init_loads_spec(self, tools):
        assert tools.spec['planStateCode'] == 'UT'
        assert 'account' in tools.spec

    def test_projection_covers_horizon(self, tools):
        years = tools.list_available_years()
        assert years['first_year'] == 2027
        assert years['last_year'] == 2036
        assert len(years['years']) == 10

    def test_program_overview(self, tools):
        overview = tools.get_program_overview()
        assert overview['program_name'] == 'testprogram'
        assert overview['projection']['first_month'] == 'Jan 2027'
        assert overview['projection']['last_month'] == 'Dec 2036'
        assert overview['projection']['annual_return_source'] == 'override'
        assert overview['account']['monthly_contribution_future_years'] == 500

    def test_year_summary(self, tools):
        summary = tools.get_year_summary(2027)
        assert summary['contribution'] == 6000
        assert summary['withdrawal'] == 0
        assert summary['earnings'] > 0
        assert summary['months'] == 12

    def test_year_summary_out_of_range(self, tools):
        assert 'error' in tools.get_year_summary(1999)

    def test_year_summary_includes_benefits(self, tools):
        # Single filer at 20000 AGI qualifies for the 50% credit on up to 2000
        summary = tools.get_year_summary(2027)
        assert summary['savers_credit'] == pytest.approx(1000.0)
        assert summary['state_benefit'] > 0

    def test_schedule_by_year(self, tools):
        schedule = tools.get_schedule(2028, 2030)['schedule']
        assert [row['year'] for row in schedule] == [2028, 2029, 2030]

    def test_schedule_by_month(self, tools):
        schedule = tools.get_schedule(2027, 2027, monthly=True)['schedule']
        assert len(schedule) == 12
        assert schedule[-1]['month'] == 'Dec 2027'
        assert schedule[0]['status'] == []

    def test_compare_accounts_window(self, tools):
        comparison = tools.compare_accounts()
        assert comparison['able']['ending_balance'] > comparison['taxable']['ending_balance']
        assert comparison['taxable']['federal_tax'] > 0
        assert comparison['ending_balance_difference'] > 0

    def test_compare_accounts_single_year(self, tools):
        comparison = tools.compare_accounts(2027)
        assert comparison['period'] == '2027'

    def test_limit_status_within_base_limit(self, tools):
        status = tools.get_limit_status()
        assert status['mode'] == 'idle'
        assert status['applicableLimit'] == 20000
        assert status['autoAdjusted'] is False
        assert status['resolutionPending'] is False

    def test_savers_credit(self, tools):
        credit = tools.get_savers_credit()
        assert credit['eligible'] is True
        assert credit['creditPercent'] == 0.5

    def test_lifetime_totals(self, tools):
        totals = tools.get_lifetime_totals()
        assert totals['total_contributions'] == pytest.approx(60000.0)
        assert totals['final_able_balance'] > 61000
        assert totals['depletion_month'] is None


class TestMultiProgramTools:
    """Tests for MultiProgramTools class."""

    @pytest.fixture
    def multi_tools(self, test_base_path):
        return MultiProgramTools(test_base_path)

    def test_discovers_programs(self, multi_tools):
        assert 'testprogram' in multi_tools.programs
        assert multi_tools.default_program == 'testprogram'

    def test_list_programs(self, multi_tools):
        result = multi_tools.list_programs()
        assert result['available_programs'] == ['testprogram']
        assert result['programs_info']['testprogram']['plan_state'] == 'UT'

    def test_unknown_program_raises(self, multi_tools):
        with pytest.raises(ValueError, match="not found"):
            multi_tools.get_program_overview('missing')

    def test_results_tagged_with_program(self, multi_tools):
        result = multi_tools.get_year_summary(2027)
        assert result['program'] == 'testprogram'

    def test_reload_programs(self, multi_tools):
        result = multi_tools.reload_programs()
        assert result['status'] == 'success'
        assert result['changes']['reloaded'] == ['testprogram']
        assert result['changes']['added'] == []

    def test_compare_programs_with_itself(self, multi_tools):
        result = multi_tools.compare_programs('testprogram', 'testprogram', ['final_able_balance'])
        assert result['metrics']['final_able_balance']['difference'] == 0

    def test_calculate_accepts_json_text(self, multi_tools):
        result = multi_tools.calculate(json.dumps({"planStateCode": "UT"}))
        assert result['status'] == 200
        assert result['body']['state']['maxAccountBalance'] == 550000

    def test_calculate_rejects_non_object(self, multi_tools):
        result = multi_tools.calculate("[1, 2]")
        assert result['status'] == 400


class TestMultiProgramToolsMultiplePrograms:
    """Tests that require more than one program."""

    @pytest.fixture
    def multi_base_path(self, test_base_path):
        temp_dir = tempfile.mkdtemp()
        shutil.copytree(os.path.join(test_base_path, 'input-parameters'), os.path.join(temp_dir, 'input-parameters'))
        shutil.copytree(
            os.path.join(FIXTURES_PATH, 'testprogram'),
            os.path.join(temp_dir, 'input-parameters', 'second')
        )
        os.symlink(os.path.join(PROJECT_ROOT, 'reference'), os.path.join(temp_dir, 'reference'))
        yield temp_dir
        shutil.rmtree(temp_dir, ignore_errors=True)

    def test_requires_explicit_program(self, multi_base_path):
        multi_tools = MultiProgramTools(multi_base_path)
        with pytest.raises(ValueError, match="Multiple programs"):
            multi_tools.get_year_summary(2027)

    def test_explicit_program_works(self, multi_base_path):
        multi_tools = MultiProgramTools(multi_base_path)
        assert multi_tools.get_year_summary(2027, 'second')['program'] == 'second'

    def test_bad_spec_is_skipped(self, multi_base_path):
        bad_dir = os.path.join(multi_base_path, 'input-parameters', 'broken')
        os.makedirs(bad_dir)
        with open(os.path.join(bad_dir, 'spec.json'), 'w') as f:
            f.write("{not json")
        multi_tools = MultiProgramTools(multi_base_path)
        assert 'broken' not in multi_tools.programs
        assert 'second' in multi_tools.programs
