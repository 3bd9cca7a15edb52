"""Argument parsing functionality for depends."""

import argparse
from constants import Constants


def build_parser():
    """Builds the command line parser."""
    parser = argparse.ArgumentParser(
        prog="depends",
        description=(
            "depends - Transitive NuGet dependency graph analyzer"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-p", "--package",
                             dest="PACKAGE",
                             help="Package id to analyze from the configured registries.",
                             action="store", type=str)
    input_group.add_argument("--project",
                             dest="PROJECT",
                             help="Path to a restored SDK-style project file.",
                             action="store", type=str)

    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Package version (required with --package).",
                        action="store", type=str)
    parser.add_argument("-f", "--framework",
                        dest="FRAMEWORK",
                        help=("Target framework, i.e: net8.0, netstandard2.0, net48 "
                              "(default: configured framework for packages, "
                              "the project's first framework for projects)"),
                        action="store", type=str)
    parser.add_argument("-s", "--source",
                        dest="SOURCES",
                        help="Package source URL or folder; overrides configured registries. Repeatable.",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file",
                        action="store",
                        type=str)
    parser.add_argument("--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or text). If not specified, inferred from --output extension; defaults to text.",
                        action="store",
                        type=str.lower,
                        choices=Constants.SUPPORTED_FORMATS)
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help="Number of parallel package downloads",
                        action="store",
                        type=int)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.PACKAGE and not args.VERSION:
        parser.error("--version is required with --package")
    if args.JOBS is not None and args.JOBS < 1:
        parser.error("--jobs must be at least 1")
    return args
