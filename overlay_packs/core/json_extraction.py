"""
JSON object extraction from free-form model output.

Reasoning providers often wrap the requested JSON in prose or Markdown code
fences. This is the single place that turns such text into a mapping.
"""

import json
import re
from typing import Any, Dict, Iterable, Optional

from overlay_packs.core.exceptions import ParseError

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Extract the outermost JSON object from text.

    Strips code fences, locates the span from the first "{" to the last "}",
    and parses it.

    Args:
        text: Raw provider output

    Returns:
        Parsed JSON object.

    Raises:
        ParseError: If no object is found, it does not parse, or the
            top-level value is not an object.
    """
    if not text or not text.strip():
        raise ParseError("Empty response, no JSON object to extract")

    content = _FENCE_RE.sub("", text).strip()

    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        raise ParseError(
            "No JSON object found in response",
            details={"preview": content[:200]},
        )

    try:
        data = json.loads(content[start:end + 1])
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Invalid JSON in response: {e.msg}",
            details={"preview": content[start:start + 200]},
        ) from e

    if not isinstance(data, dict):
        raise ParseError("Top-level JSON value is not an object")

    return data


def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    """
    Ensure all required top-level fields are present and non-empty.

    Raises:
        ParseError: Listing every missing field.
    """
    missing = [name for name in fields if not data.get(name)]
    if missing:
        raise ParseError(
            f"Response missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )
