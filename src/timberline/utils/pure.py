import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Literal, Optional

PENNY = Decimal("0.01")
UK_POSTCODE_RE = re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2}$")


def to_money(value: Any) -> Decimal:
    """
    Coerce a stored amount (float, int, str or Decimal) to a 2dp Decimal.
    Floats go through str() so 0.1 stays 0.10 rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        amount = value
    elif value is None or value == "":
        amount = Decimal("0")
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    return amount.quantize(PENNY, rounding=ROUND_HALF_UP)


def format_money(amount: Any, symbol: str = "£") -> str:
    return f"{symbol}{to_money(amount):,.2f}"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [[str(cell).replace("|", "\\|") for cell in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def is_uk_postcode(value: str) -> bool:
    return bool(UK_POSTCODE_RE.match(value.strip().upper()))
