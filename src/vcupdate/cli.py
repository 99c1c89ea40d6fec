"""vcupdate command line entry point.

    Returns:
        int: Exit code (0 success, 3 partial failure, 1 fatal abort,
        2 configuration error)
"""
import logging
import os
import sys

from vcupdate.args import parse_args
from vcupdate.config import ConfigError, load_config, parse_repositories
from vcupdate.constants import Constants, ExitCodes
from vcupdate.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from vcupdate.orchestrator import run_update
from vcupdate.report import export_csv, export_json, log_summary

logger = logging.getLogger(__name__)


def _report_format(args) -> str:
    if args.REPORT_FORMAT:
        return args.REPORT_FORMAT
    if args.REPORT and args.REPORT.lower().endswith(".csv"):
        return "csv"
    return "json"


def build_config(args):
    """Resolve the run configuration; CLI values take precedence."""
    config = load_config(args.CONFIG)
    repositories = parse_repositories(args.REPOSITORIES, os.environ) if args.REPOSITORIES else None
    return config.with_overrides(
        catalogs_directory=args.CATALOGS_DIR,
        output_directory=args.OUTPUT_DIR,
        rejected_qualifiers=frozenset(args.REJECTED_QUALIFIERS) if args.REJECTED_QUALIFIERS else None,
        ignored_modules=frozenset(args.IGNORED_MODULES) if args.IGNORED_MODULES else None,
        allow_major_updates=args.ALLOW_MAJOR_UPDATES,
        repositories=repositories,
        parallelism=args.PARALLELISM,
        request_timeout=args.REQUEST_TIMEOUT,
        fail_on_catalog_error=args.FAIL_ON_CATALOG_ERROR,
        recursive=args.RECURSIVE,
    )


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging(log_file=args.LOG_FILE, quiet=args.QUIET)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(event="function_entry", component="cli", action="main"))

    try:
        config = build_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return ExitCodes.USAGE_ERROR.value

    logger.info("Scanning %s, proposals go to %s.", config.catalogs_directory, config.output_directory)
    report = run_update(config)
    log_summary(report)

    if args.REPORT:
        try:
            if _report_format(args) == "csv":
                export_csv(report, args.REPORT)
            else:
                export_json(report, args.REPORT)
        except OSError:
            return ExitCodes.USAGE_ERROR.value

    if report.aborted_by is not None:
        logger.error("Aborted by %s (%s): %s", report.aborted_by.catalog, report.aborted_by.path,
                     report.aborted_by.message)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
