"""
Parsers that turn raw model output into storable results.

Models are chatty: they wrap JSON in markdown code fences, add preambles,
and number their bullet points. These helpers tolerate that.
"""

import json
import re
from dataclasses import dataclass

from studyscribe.errors import ContentValidationError
from studyscribe.logging_config import debug_log, warning

CODE_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")
BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*\S)\s*$")


@dataclass(frozen=True)
class KeyTerm:
    term: str
    definition: str

    def to_dict(self) -> dict[str, str]:
        return {"term": self.term, "definition": self.definition}


def extract_json_array(raw_text: str) -> list | None:
    """
    Extract a JSON array from model output.

    Handles markdown code fences and text before or after the array.

    Returns:
        The parsed list, or None if no JSON array could be parsed
    """
    if not raw_text or not raw_text.strip():
        return None

    text = raw_text.strip()

    fence_match = CODE_FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()

    first = text.find('[')
    last = text.rfind(']')
    if first == -1 or last <= first:
        return None

    try:
        parsed = json.loads(text[first:last + 1])
    except json.JSONDecodeError as e:
        debug_log(f"[PARSERS] JSON array parse failed: {e}")
        return None

    return parsed if isinstance(parsed, list) else None


def parse_key_points(text: str) -> list[str]:
    """
    Parse a bulleted list into individual key points.

    Lines starting with "-", "*", "•" or a number ("1." / "1)") are points;
    other non-blank lines are kept as-is when no bullets are present at all.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    points = []
    for line in lines:
        match = BULLET_RE.match(line)
        if match:
            points.append(match.group(1).strip())

    if not points:
        points = [line.strip() for line in lines]

    debug_log(f"[PARSERS] Parsed {len(points)} key points")
    return points


def parse_key_terms(text: str) -> list[KeyTerm]:
    """
    Parse a JSON array of {"term", "definition"} objects.

    Entries missing either string are dropped.

    Raises:
        ContentValidationError: If the output contains no JSON array
    """
    items = extract_json_array(text)
    if items is None:
        raise ContentValidationError("Model output did not contain a JSON array of key terms")

    terms = []
    for item in items:
        if not isinstance(item, dict):
            continue
        term = item.get("term")
        definition = item.get("definition")
        if isinstance(term, str) and term.strip() and isinstance(definition, str):
            terms.append(KeyTerm(term=term.strip(), definition=definition.strip()))
        else:
            warning(f"[PARSERS] Dropping malformed key term entry: {item!r}")

    debug_log(f"[PARSERS] Parsed {len(terms)} key terms from {len(items)} entries")
    return terms
