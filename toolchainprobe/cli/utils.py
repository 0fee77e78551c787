"""
Shared helpers for CLI commands.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

import yaml

logger = logging.getLogger(__name__)

FORMATS = ["summary", "json", "yaml"]


def dump(data: Any, fmt: str) -> str:
    """Serialize plain data as JSON or YAML."""
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    raise ValueError(f"unsupported format '{fmt}'")


def render(
    items: List[Any],
    fmt: str,
    summary: Callable[[Any], str],
    empty_message: str = "",
) -> str:
    """
    Render records as text.

    Args:
        items: Records exposing to_dict()
        fmt: One of 'summary', 'json' or 'yaml'
        summary: Renders one record for the summary format
        empty_message: Summary output when there is nothing to show

    Raises:
        ValueError: If the format is not supported
    """
    if fmt in ("json", "yaml"):
        return dump([item.to_dict() for item in items], fmt)
    if fmt == "summary":
        if not items:
            return empty_message + "\n" if empty_message else ""
        return "".join(summary(item) + "\n" for item in items)
    raise ValueError(f"unsupported format '{fmt}'")


def write_output(text: str, output: Optional[Path] = None) -> None:
    """Write command output to stdout, or to a file when output is given."""
    if output is None:
        sys.stdout.write(text)
        return
    output = Path(output)
    logger.info(f"Writing results to {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


def split_types(values: Optional[Iterable[str]]) -> Optional[List[str]]:
    """Flatten repeated and comma-separated --type values."""
    if not values:
        return None
    types = []
    for value in values:
        types.extend(t.strip() for t in value.split(",") if t.strip())
    return types


def stderr_feedback(message: str) -> None:
    print(message, file=sys.stderr)
