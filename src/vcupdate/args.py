"""Argument parsing functionality for vcupdate."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="vcupdate",
        description=(
            "vcupdate - propose version catalog updates without touching the source catalogs"
        ),
        add_help=True,
    )

    parser.add_argument("-d", "--catalogs-dir",
                        dest="CATALOGS_DIR",
                        help="Directory containing *.versions.toml catalogs (default: gradle)",
                        action="store", type=str)
    parser.add_argument("-o", "--output-dir",
                        dest="OUTPUT_DIR",
                        help="Directory receiving the proposed catalogs (default: gradle/updates)",
                        action="store", type=str)
    parser.add_argument("--reject-qualifier",
                        dest="REJECTED_QUALIFIERS",
                        help="Qualifier to reject, e.g. rc (repeatable; replaces the default set)",
                        action="append", type=str)
    parser.add_argument("--ignore-module",
                        dest="IGNORED_MODULES",
                        help="Module to leave untouched as group:artifact (repeatable)",
                        action="append", type=str)
    parser.add_argument("--allow-major-updates",
                        dest="ALLOW_MAJOR_UPDATES",
                        help="Propose versions with a different leading version segment.",
                        action="store_true", default=None)
    parser.add_argument("--repository",
                        dest="REPOSITORIES",
                        help="Maven repository URL, in priority order (repeatable; replaces the defaults)",
                        action="append", type=str)
    parser.add_argument("--parallelism",
                        dest="PARALLELISM",
                        help="Number of concurrent repository lookups",
                        action="store", type=int)
    parser.add_argument("--timeout",
                        dest="REQUEST_TIMEOUT",
                        help="Per-request timeout in seconds",
                        action="store", type=float)
    parser.add_argument("--fail-on-catalog-error",
                        dest="FAIL_ON_CATALOG_ERROR",
                        help="Abort the whole run when any catalog cannot be read.",
                        action="store_true", default=None)
    parser.add_argument("-r", "--recursive",
                        dest="RECURSIVE",
                        help="Recursively scan the catalogs directory.",
                        action="store_true", default=None)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store", type=str)
    parser.add_argument("--report",
                        dest="REPORT",
                        help="Path to report file (JSON or CSV)",
                        action="store", type=str)
    parser.add_argument("-f", "--format",
                        dest="REPORT_FORMAT",
                        help="Report format (json or csv). If not specified, inferred from --report extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'csv'])
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $VCUPDATE_LOG_LEVEL or INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")

    return parser.parse_args(argv)
