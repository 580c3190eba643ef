#!/usr/bin/env python3
"""MCP Server for the ABLE Planner.

This server exposes ABLE account projections as MCP tools, allowing AI
assistants to answer questions about a beneficiary's savings plan.
"""

import os
import sys
import json
import asyncio
from typing import Any

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from tools import MultiProgramTools


# Create the MCP server
server = Server("able-planner")

# Global tools instance (initialized on startup)
tools: MultiProgramTools | None = None


def get_tools() -> MultiProgramTools:
    """Get or initialize the tools instance."""
    global tools
    if tools is None:
        # Default program can be set via ABLE_PLANNER_PROGRAM env var
        default_program = os.environ.get('ABLE_PLANNER_PROGRAM')
        base_path = os.path.join(os.path.dirname(__file__), '..')
        tools = MultiProgramTools(base_path, default_program)
    return tools


# Common program parameter schema
PROGRAM_PARAM = {
    "type": "string",
    "description": "The program name (folder in input-parameters). If not specified, uses the default program. Use list_programs to see available programs."
}

YEAR_PARAM = {
    "type": "integer",
    "description": "Calendar year within the projection"
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available ABLE planning tools."""
    return [
        Tool(
            name="list_programs",
            description="List all available ABLE planning programs with their plan state and projected years.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="reload_programs",
            description="Reload all programs from disk. Use this after adding, modifying, or removing program spec.json files to refresh the cache without restarting the server.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="get_program_overview",
            description="Get an overview of the plan: states, filing status, resolved return and horizon assumptions, account inputs, and enforcement messages. Use this first to understand the plan.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="list_available_years",
            description="List the calendar years covered by the projection and the report window.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="get_year_summary",
            description="Get ABLE account contributions, withdrawals, earnings, Saver's Credit, state benefit and ending balance for one year.",
            inputSchema={
                "type": "object",
                "properties": {
                    "year": YEAR_PARAM,
                    "program": PROGRAM_PARAM
                },
                "required": ["year"]
            }
        ),
        Tool(
            name="get_schedule",
            description="Get the ABLE account schedule by year, or by month with status codes when monthly is true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "start_year": YEAR_PARAM,
                    "end_year": YEAR_PARAM,
                    "monthly": {
                        "type": "boolean",
                        "description": "Return month rows instead of year rows"
                    },
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="compare_accounts",
            description="Compare the ABLE account with a taxable account funded the same way, for one year or over the report window.",
            inputSchema={
                "type": "object",
                "properties": {
                    "year": YEAR_PARAM,
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="get_limit_status",
            description="Get the annual contribution limit, Work to ABLE status, and where contributions or increases stop because of limits.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="get_savers_credit",
            description="Get the federal Saver's Credit eligibility evaluation, credit rate and reasons.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="get_lifetime_totals",
            description="Get totals over the whole projection horizon for the ABLE and taxable accounts.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program": PROGRAM_PARAM
                },
                "required": []
            }
        ),
        Tool(
            name="compare_programs",
            description="Compare lifetime totals between two programs side by side.",
            inputSchema={
                "type": "object",
                "properties": {
                    "program1": {
                        "type": "string",
                        "description": "First program name to compare"
                    },
                    "program2": {
                        "type": "string",
                        "description": "Second program name to compare"
                    },
                    "metrics": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional: specific metrics to compare, e.g. 'final_able_balance', 'total_earnings', 'total_savers_credit'. If not specified, compares all numeric totals."
                    }
                },
                "required": ["program1", "program2"]
            }
        ),
        Tool(
            name="calculate",
            description="Validate a calculate request and return the resolved plan rules, assumptions, Saver's Credit evaluation and projection window.",
            inputSchema={
                "type": "object",
                "properties": {
                    "payload": {
                        "type": "object",
                        "description": "Request body with clientId, planStateCode, stateCode, filingStatus, agi, fscCriteria, projection and override fields"
                    }
                },
                "required": ["payload"]
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        ap_tools = get_tools()
        program = arguments.get("program")

        if name == "list_programs":
            result = ap_tools.list_programs()
        elif name == "reload_programs":
            result = ap_tools.reload_programs()
        elif name == "get_program_overview":
            result = ap_tools.get_program_overview(program)
        elif name == "list_available_years":
            result = ap_tools.list_available_years(program)
        elif name == "get_year_summary":
            result = ap_tools.get_year_summary(arguments["year"], program)
        elif name == "get_schedule":
            result = ap_tools.get_schedule(
                arguments.get("start_year"),
                arguments.get("end_year"),
                arguments.get("monthly", False),
                program
            )
        elif name == "compare_accounts":
            result = ap_tools.compare_accounts(arguments.get("year"), program)
        elif name == "get_limit_status":
            result = ap_tools.get_limit_status(program)
        elif name == "get_savers_credit":
            result = ap_tools.get_savers_credit(program)
        elif name == "get_lifetime_totals":
            result = ap_tools.get_lifetime_totals(program)
        elif name == "compare_programs":
            result = ap_tools.compare_programs(
                arguments["program1"],
                arguments["program2"],
                arguments.get("metrics")
            )
        elif name == "calculate":
            result = ap_tools.calculate(arguments["payload"])
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(
            type="text",
            text=json.dumps(result, indent=2, default=str)
        )]
    except Exception as e:
        return [TextContent(
            type="text",
            text=json.dumps({"error": str(e)}, indent=2)
        )]


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    asyncio.run(main())
