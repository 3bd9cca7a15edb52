"""depends - transitive NuGet dependency graph analyzer.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import ExitCodes, OutputFormats, Constants, load_config
from common.cancellation import CancellationToken
from common.errors import (
    ConfigError,
    DependsError,
    GraphConstructionError,
    LockFileError,
    MalformedFrameworkError,
    MalformedVersionError,
    MissingRestoreError,
    PackageNotFoundError,
    ProjectLoadError,
    RegistryError,
    ResolutionCancelledError,
    UnsatisfiedDependencyError,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args

logger = logging.getLogger(__name__)

# error type -> exit code; first match wins
_EXIT_CODES = (
    ((ConfigError, ProjectLoadError, MissingRestoreError, LockFileError,
      MalformedVersionError, MalformedFrameworkError), ExitCodes.FILE_ERROR),
    ((RegistryError,), ExitCodes.CONNECTION_ERROR),
    ((PackageNotFoundError, UnsatisfiedDependencyError, GraphConstructionError,
      ResolutionCancelledError), ExitCodes.RESOLUTION_ERROR),
)


def exit_code_for(error):
    """Exit code for a library error."""
    for types, code in _EXIT_CODES:
        if isinstance(error, types):
            return code
    return ExitCodes.RESOLUTION_ERROR


def _setup_logging(args):
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def build_repositories(args):
    """Repositories from --source flags, else from configuration."""
    from registry.nuget import create_repositories, create_repository  # pylint: disable=import-outside-toplevel
    if args.SOURCES:
        return [create_repository(source, source) for source in args.SOURCES]
    return create_repositories(Constants.REGISTRIES)


def output_format(args):
    """Explicit --format, else inferred from the --output extension."""
    if args.OUTPUT_FORMAT:
        return args.OUTPUT_FORMAT
    if args.OUTPUT and args.OUTPUT.lower().endswith(".json"):
        return OutputFormats.JSON.value
    return OutputFormats.TEXT.value


def build_graph(args, cancellation=None):
    """Run the analysis selected by ``args``."""
    from analysis.analyzer import DependencyAnalyzer  # pylint: disable=import-outside-toplevel
    from versioning.parser import parse_identity  # pylint: disable=import-outside-toplevel

    if args.PROJECT:
        analyzer = DependencyAnalyzer(max_workers=args.JOBS, cancellation=cancellation)
        return analyzer.analyze_project(args.PROJECT, args.FRAMEWORK)

    identity = parse_identity(args.PACKAGE, args.VERSION)
    analyzer = DependencyAnalyzer(
        build_repositories(args),
        max_workers=args.JOBS,
        cancellation=cancellation,
    )
    return analyzer.analyze_package(identity, args.FRAMEWORK or Constants.DEFAULT_FRAMEWORK)


def write_output(graph, args):
    """Write or print ``graph`` in the selected format."""
    from graph.export import export_json, render_text, to_json_dict  # pylint: disable=import-outside-toplevel

    fmt = output_format(args)
    if args.OUTPUT:
        if fmt == OutputFormats.JSON.value:
            export_json(graph, args.OUTPUT)
        else:
            with open(args.OUTPUT, "w", encoding="utf-8") as file:
                file.write(render_text(graph))
            logger.info("Text file has been successfully exported at: %s", args.OUTPUT)
        return
    if args.QUIET:
        return
    if fmt == OutputFormats.JSON.value:
        sys.stdout.write(json.dumps(to_json_dict(graph), ensure_ascii=False, indent=4) + "\n")
    else:
        sys.stdout.write(render_text(graph))


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main"),
        )

    try:
        load_config(args.CONFIG)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    cancellation = CancellationToken()
    try:
        graph = build_graph(args, cancellation)
    except KeyboardInterrupt:
        cancellation.cancel("interrupted")
        logger.error("Interrupted by user")
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)
    except DependsError as e:
        logger.error("%s", e)
        sys.exit(exit_code_for(e).value)

    try:
        write_output(graph, args)
    except OSError as e:
        logger.error("Output couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit", component="cli", action="main", outcome="success",
                count=len(graph.nodes),
            ),
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
