"""Field metadata for YearRow fields.

This module provides descriptions and short names for the schedule fields.
Short names are used as column headers in tables and the shell 'get' command.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class FieldInfo:
    """Metadata for a single field."""
    short_name: str  # Column header (unique, concise)
    description: str  # Full description of the field


# Field metadata dictionary mapping field names to their info
FIELD_METADATA: Dict[str, FieldInfo] = {
    "year": FieldInfo("Year", "Calendar year"),

    # Cash flows
    "contribution": FieldInfo("Contributions", "Contributions made during the year"),
    "withdrawal": FieldInfo("Withdrawals", "Withdrawals taken during the year (after clamping to the available balance)"),
    "earnings": FieldInfo("Earnings", "Investment earnings credited during the year"),

    # Taxes and benefits
    "federal_tax": FieldInfo("Federal Tax", "Federal tax on earnings (taxable account only)"),
    "state_tax": FieldInfo("State Tax", "State tax on earnings (taxable account only)"),
    "credit_amount": FieldInfo("Saver's Credit", "Federal Saver's Credit earned on the year's contributions"),
    "state_benefit_amount": FieldInfo("State Benefit", "State tax deduction or credit value earned on the year's contributions"),

    # Balances
    "ending_balance": FieldInfo("Ending Balance", "Account balance at the end of the year"),
    "taxable_ending_balance": FieldInfo("Taxable Balance", "Taxable comparison account balance at the end of the year"),
    "taxable_earnings": FieldInfo("Taxable Earnings", "Investment return of the taxable comparison account"),
    "taxable_tax": FieldInfo("Tax On Earnings", "Federal plus state tax on the taxable account's earnings"),
}


def get_short_name(field_name: str) -> str:
    info = FIELD_METADATA.get(field_name)
    return info.short_name if info else field_name


def get_description(field_name: str) -> str:
    info = FIELD_METADATA.get(field_name)
    return info.description if info else ""


def get_field_info(field_name: str) -> FieldInfo | None:
    return FIELD_METADATA.get(field_name)


def wrap_header(text: str, max_width: int) -> list[str]:
    """Wrap header text into multiple lines that fit within max_width.

    Words are split on spaces and distributed across lines to minimize
    the total number of lines while staying within max_width.

    Args:
        text: The header text to wrap
        max_width: Maximum width per line

    Returns:
        List of strings, each representing a line
    """
    if len(text) <= max_width:
        return [text]

    words = text.split()
    lines = []
    current_line = ""

    for word in words:
        if not current_line:
            current_line = word
        elif len(current_line) + 1 + len(word) <= max_width:
            current_line += " " + word
        else:
            lines.append(current_line)
            current_line = word

    if current_line:
        lines.append(current_line)

    return lines
