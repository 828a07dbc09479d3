"""
bootstrap/entrypoints.py - Logging setup and CLI entry points

Provides setup_logging() and the xselect-inspect command, which prints the
relationship map and diagnostics of a static JSON field-config file.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import argparse
import json
import logging
import sys

logger = logging.getLogger("bootstrap.entrypoints")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        return json.dumps({
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        })


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    log_format: str = DEFAULT_FORMAT,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        log_format: logging.Formatter format string when not using JSON
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(log_format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


# =============================================================================
# INSPECT
# =============================================================================

def load_field_configs(path: str) -> List[Any]:
    """
    Read field configs from a JSON file.

    Accepts either a list of field objects or {"fields": [...]}.
    """
    from xselect.core.types import FieldConfig

    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("fields", [])
    if not isinstance(data, list):
        raise ValueError("Expected a list of field configs or an object with 'fields'")

    return [FieldConfig.from_dict(item) for item in data]


def inspect_configs(configs: List[Any]) -> Dict[str, Any]:
    """Relationship map, descendants and diagnostics of a config list."""
    from xselect.dependencies.graph import RelationshipGraph

    graph = RelationshipGraph(configs)
    names = [c.name for c in configs]
    return {
        "fields": names,
        "duplicates": sorted({name for name in names if names.count(name) > 1}),
        "roots": graph.roots(),
        "relationships": graph.to_dict(),
        "descendants": {c.name: graph.descendants_of(c.name) for c in configs},
        "unknown_parents": graph.unknown_parents(),
        "cycles": graph.find_cycles(),
    }


def format_report(report: Dict[str, Any]) -> str:
    lines = [f"Fields: {len(report['fields'])}  Roots: {', '.join(report['roots']) or '-'}", ""]

    for name, entry in report["relationships"].items():
        parent = entry["parent"]
        if isinstance(parent, list):
            parent = ", ".join(parent)
        lines.append(f"  {name}")
        lines.append(f"    parent:      {parent or '-'}")
        lines.append(f"    children:    {', '.join(entry['children']) or '-'}")
        lines.append(f"    descendants: {', '.join(report['descendants'][name]) or '-'}")

    if report["duplicates"]:
        lines.append("")
        lines.append(f"Duplicate fields: {', '.join(report['duplicates'])}")

    if report["unknown_parents"]:
        lines.append("")
        lines.append("Unknown parents:")
        for name, missing in report["unknown_parents"].items():
            lines.append(f"  {name} -> {', '.join(missing)}")

    if report["cycles"]:
        lines.append("")
        lines.append("Cycles:")
        for cycle in report["cycles"]:
            lines.append(f"  {' -> '.join(cycle)}")

    return "\n".join(lines)


def cli_main(args: list = None) -> int:
    """
    xselect-inspect entry point.

    Returns:
        0 when the configs are valid, 1 when diagnostics were found,
        2 when the file could not be read
    """
    parser = argparse.ArgumentParser(
        description="Inspect the dependency graph of select field configs",
        prog="xselect-inspect",
    )
    parser.add_argument("configs", help="JSON file with field configs")
    parser.add_argument(
        "-f", "--field",
        help="Only show this field",
        default=None,
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to xselect configuration file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )

    parsed = parser.parse_args(args)

    from .config import load_config

    settings = load_config(parsed.config)
    if parsed.verbose or settings.debug:
        log_level = "DEBUG"
    else:
        log_level = parsed.log_level or settings.logging.level
    setup_logging(
        level=log_level,
        log_file=parsed.log_file or settings.logging.log_file,
        json_format=settings.logging.json_logs,
        log_format=settings.logging.format,
    )

    try:
        configs = load_field_configs(parsed.configs)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Cannot read field configs from {parsed.configs}: {e}")
        return 2

    report = inspect_configs(configs)

    if parsed.field:
        if parsed.field not in report["relationships"]:
            logger.error(f"Unknown field: {parsed.field}")
            return 2
        report["relationships"] = {parsed.field: report["relationships"][parsed.field]}

    if parsed.json:
        print(json.dumps(report, indent=2))
    else:
        print(format_report(report))

    return 1 if report["duplicates"] or report["unknown_parents"] or report["cycles"] else 0


def main():
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
