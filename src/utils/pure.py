import json
import re
from typing import List, Literal, Optional

_OTP_RE = re.compile(r"^[0-9]{6}$")
# leading list markers an LLM likes to add: "- ", "* ", "1. ", "2) "
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def normalize_email(email: Optional[str]) -> str:
    """Emails are keys; compare them stripped and lower-cased."""
    return (email or "").strip().lower()


def is_otp_code(code: Optional[str]) -> bool:
    """True if `code` is exactly six ASCII digits."""
    return bool(code) and _OTP_RE.match(code) is not None


def format_money(amount: float) -> str:
    return f"${amount:,.2f}"


def parse_id_list(text: Optional[str]) -> List[str]:
    """
    Parse an AI response that should be a JSON array of strings.

    Tolerates a ```json fenced block. If the text is not JSON at all, falls back
    to one entry per non-empty line, with list markers, quotes and trailing
    commas stripped. A JSON value that is not an array yields [].
    """
    if not text:
        return []
    body = text.strip()
    if body.startswith("```"):
        body = body.strip("`")
        if body.lower().startswith("json"):
            body = body[4:]
        body = body.strip()

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        entries = []
        for line in body.splitlines():
            line = _BULLET_RE.sub("", line).strip().rstrip(",").strip().strip("\"'")
            if line and line not in ("[", "]"):
                entries.append(line)
        return entries

    if not isinstance(parsed, list):
        return []
    return [str(x).strip() for x in parsed if isinstance(x, (str, int)) and str(x).strip()]


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of cells (converted with str()).
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all left.

    Returns:
        str: Markdown formatted table, or "" if there are no rows.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    # pipes inside cells would break the table
    rows = [[str(cell).replace("|", "\\|") for cell in row] for row in rows]

    aligns = aligns or ["l"] * len(headers)
    if len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)
