#!/usr/bin/env python3
"""
threatlensctl - ThreatLens operational CLI

A lightweight CLI around the analysis core:
- Analyze a log file (threatlensctl analyze access.log)
- List the MITRE ATT&CK reference table (threatlensctl techniques)
- Version info (threatlensctl version)
"""

import argparse
import json
import sys
from pathlib import Path

from threatlens import __version__
from threatlens.core.config import get_config, load_config_file
from threatlens.core.exceptions import ConfigError
from threatlens.core.logging_setup import setup_logging
from threatlens.detection.mitre import list_techniques
from threatlens.pipeline import run_pipeline


class Colors:
    """ANSI color codes for terminal output."""

    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


RISK_COLORS = {
    "CRITICAL": Colors.RED,
    "HIGH": Colors.RED,
    "MEDIUM": Colors.YELLOW,
    "LOW": Colors.GREEN,
}


def colorize(text: str, color: str) -> str:
    """Colorize text if stdout is a TTY."""
    if sys.stdout.isatty():
        return f"{color}{text}{Colors.RESET}"
    return text


def cmd_analyze(args) -> int:
    """
    Analyze a log file and print the report.

    Returns:
        Exit code (0 on success, 1 on unreadable input or configuration)
    """
    path = Path(args.logfile)
    if not path.is_file():
        print(colorize(f"✗ Log file not found: {path}", Colors.RED), file=sys.stderr)
        return 1

    try:
        config = load_config_file(args.config) if args.config else get_config()
    except ConfigError as e:
        print(colorize(f"✗ {e}", Colors.RED), file=sys.stderr)
        return 1

    content = path.read_bytes()
    format_hint = args.format_hint or path.name
    result = run_pipeline(content, format_hint=format_hint, config=config)

    report = {
        "file": str(path),
        "totalEntries": len(result.entries),
        "threats": [t.model_dump(mode="json", by_alias=True) for t in result.threats],
        "analysis": result.analysis.model_dump(mode="json", by_alias=True),
    }

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        analysis = result.analysis
        color = RISK_COLORS.get(analysis.risk_level, Colors.BLUE)
        print(colorize(f"\nThreatLens report for {path}", Colors.BOLD))
        print(colorize("=" * 60, Colors.BOLD))
        print(colorize(f"Risk: {analysis.risk_score}/100 ({analysis.risk_level})", color))
        print()
        print(analysis.summary)
        print()

    if args.output:
        with open(args.output, "w") as f:
            json.dump(report, f, indent=2)
        print(colorize(f"✓ Report saved to {args.output}", Colors.GREEN), file=sys.stderr)

    return 0


def cmd_techniques(args) -> int:
    """
    Print the MITRE ATT&CK reference table.

    Returns:
        Exit code (always 0)
    """
    for technique in list_techniques():
        print(f"{technique.id:<10} {technique.tactic:<22} {technique.name}")
    return 0


def cmd_version(args) -> int:
    """
    Print version information.

    Returns:
        Exit code (always 0)
    """
    print(f"threatlensctl version {__version__}")
    print("ThreatLens - security log normalization, detection and risk analysis")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for threatlensctl."""
    parser = argparse.ArgumentParser(
        description="ThreatLens operational CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  threatlensctl analyze access.log              # Analyze and print a report
  threatlensctl analyze events.csv --json       # JSON output
  threatlensctl analyze auth.log -c rules.yaml  # Custom thresholds
  threatlensctl techniques                      # MITRE ATT&CK reference table
  threatlensctl version                         # Show version information

Environment variables:
  THREATLENS_LOG_LEVEL                  # Logging level (default: INFO)
  THREATLENS_DETECTION_<THRESHOLD>      # e.g. THREATLENS_DETECTION_BRUTE_FORCE_COUNT=3
  THREATLENS_ANALYSIS_<THRESHOLD>       # e.g. THREATLENS_ANALYSIS_BURST_SIZE=20
        """
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: THREATLENS_LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a log file"
    )
    analyze_parser.add_argument("logfile", help="Log file to analyze")
    analyze_parser.add_argument(
        "-f", "--format-hint",
        default=None,
        help="Format hint such as 'csv' (default: the file extension)"
    )
    analyze_parser.add_argument(
        "-c", "--config",
        default=None,
        help="YAML file with detection/analysis thresholds"
    )
    analyze_parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Print the full JSON report instead of the summary"
    )
    analyze_parser.add_argument(
        "-o", "--output",
        default=None,
        help="Also write the JSON report to this path"
    )

    # techniques command
    subparsers.add_parser(
        "techniques",
        help="List the MITRE ATT&CK reference table"
    )

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information"
    )

    return parser


def main(argv=None):
    """Main entry point for threatlensctl CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level or get_config().log_level)

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    if args.command == "analyze":
        return cmd_analyze(args)
    elif args.command == "techniques":
        return cmd_techniques(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
