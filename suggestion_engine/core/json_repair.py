"""
JSON repair for LLM replies.

Models frequently wrap JSON in markdown fences or leave trailing commas;
these helpers try a sequence of increasingly aggressive fixes.
"""

import json
import re
from typing import Any, Tuple

from .errors import MalformedResponse


def extract_from_markdown(text: str) -> str:
    """
    Extract JSON from a markdown code block.

    Example:
        ```json
        {"key": "value"}
        ```
    -> {"key": "value"}
    """
    if '```json' in text:
        return text.split('```json', 1)[1].split('```', 1)[0].strip()

    if '```' in text:
        parts = text.split('```')
        if len(parts) >= 3:
            content = parts[1].strip()
            lines = content.split('\n')
            if lines and lines[0].strip().lower() == 'json':
                content = '\n'.join(lines[1:])
            return content

    return text


def extract_object(text: str) -> str:
    """Trim prose around the outermost {...} span."""
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end <= start:
        return text
    return text[start:end + 1]


def remove_trailing_commas(text: str) -> str:
    """Example: {"key": "value",} -> {"key": "value"}"""
    text = re.sub(r',\s*}', '}', text)
    return re.sub(r',\s*]', ']', text)


def quote_keys(text: str) -> str:
    """Example: {key: "value"} -> {"key": "value"}"""
    return re.sub(r'([{,]\s*)([A-Za-z_]\w*)(\s*:)', r'\1"\2"\3', text)


def convert_single_quotes(text: str) -> str:
    """Naive; breaks on apostrophes inside strings, so it runs last."""
    return text.replace("'", '"')


def repair_json(text: str) -> Tuple[str, str]:
    """
    Repair malformed JSON using multiple strategies.

    Strategies (in order):
    1. Validate as-is
    2. Extract from markdown code block / surrounding prose
    3. Remove trailing commas
    4. Quote unquoted keys
    5. Convert single quotes to double quotes

    Args:
        text: Possibly malformed JSON text

    Returns:
        Tuple of (valid_json, repair_method); method is "none" when the
        input was already valid

    Raises:
        MalformedResponse: If no strategy produces valid JSON
    """
    if _is_valid(text):
        return text, "none"

    extracted = extract_object(extract_from_markdown(text))
    if _is_valid(extracted):
        return extracted, "extraction"

    no_trailing = remove_trailing_commas(extracted)
    if _is_valid(no_trailing):
        return no_trailing, "trailing_commas"

    quoted = quote_keys(no_trailing)
    if _is_valid(quoted):
        return quoted, "quote_keys"

    double_quoted = convert_single_quotes(no_trailing)
    if _is_valid(double_quoted):
        return double_quoted, "single_to_double_quotes"

    combined = convert_single_quotes(quoted)
    if _is_valid(combined):
        return combined, "quote_keys_and_single_quotes"

    raise MalformedResponse("Unable to repair JSON after trying all strategies")


def loads_lenient(text: str) -> Any:
    """Parse JSON, repairing it first if needed.

    Raises:
        MalformedResponse: If the text cannot be repaired
    """
    if not text or not text.strip():
        raise MalformedResponse("Empty response")
    repaired, _ = repair_json(text)
    return json.loads(repaired)


def _is_valid(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True
