# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Repair of malformed tool-call argument JSON emitted by models.

Models occasionally produce argument strings such as
``{"offset":,"length":8192}`` or XML-style parameters instead of JSON.
``repair_tool_call_json`` applies a fixed, conservative set of textual
fixes and only returns a result that parses strictly.  It does not attempt
deeper structural repair such as balancing brackets.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_XML_PARAM_MARKER_RE = re.compile(r"<parameter|</parameter>")
_XML_PARAM_RE = re.compile(r'<parameter\s+name="([^"]+)"[^>]*>([^<]*)</parameter>', re.DOTALL)
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")

# (pattern, replacement) applied in order.
_SUBSTITUTIONS = [
    # Missing values: {"offset":,"x":1} / {"a": } / ["a": ]
    (re.compile(r":\s*,"), ":null,"),
    (re.compile(r":\s*\}"), ":null}"),
    (re.compile(r":\s*\]"), ":null]"),
    # Decimals without a leading zero: {"p": .5} / {"p": -.5}
    (re.compile(r":(\s*)\.(\d)"), r":\g<1>0.\2"),
    (re.compile(r":(\s*)-\.(\d)"), r":\g<1>-0.\2"),
    # Trailing commas before a closing brace or bracket
    (re.compile(r",\s*\}"), "}"),
    (re.compile(r",\s*\]"), "]"),
]


def _is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False
    return True


def _xml_value(value: str) -> Any:
    """Detect the JSON type of an XML parameter value."""
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    if value in ("", "null"):
        return None
    return value


def _xml_parameters_to_json(text: str) -> Optional[str]:
    """Convert ``<parameter name="k">v</parameter>`` blocks to a JSON object.

    Args:
        text (str): Raw argument text.

    Returns:
        Optional[str]: JSON object text, or ``None`` when no parameter
            block could be extracted.
    """
    params: Dict[str, Any] = {}
    for name, value in _XML_PARAM_RE.findall(text):
        params[name] = _xml_value(value)
    if not params:
        return None
    return json.dumps(params, ensure_ascii=False)


def repair_tool_call_json(raw_text: Optional[str]) -> Optional[str]:
    """Attempt to repair common JSON errors in tool call arguments.

    Valid JSON is returned unchanged.

    Args:
        raw_text (Optional[str]): Potentially malformed JSON text.

    Returns:
        Optional[str]: Text that parses with ``json.loads``, or ``None`` if
            the input could not be repaired. Callers must report ``None``
            as a failed tool call rather than dropping or guessing it.
    """
    if raw_text is None:
        return None
    if _is_valid_json(raw_text):
        return raw_text

    if _XML_PARAM_MARKER_RE.search(raw_text):
        converted = _xml_parameters_to_json(raw_text)
        if converted is not None:
            logger.debug("Converted XML parameter format to JSON")
            return converted

    repaired = raw_text
    for pattern, replacement in _SUBSTITUTIONS:
        repaired = pattern.sub(replacement, repaired)

    if not _is_valid_json(repaired):
        logger.debug("JSON repair attempt failed: %.200s", raw_text)
        return None

    logger.debug("Repaired malformed tool call JSON")
    return repaired
