"""Argument parsing functionality for pomoverride."""

import argparse

from constants import Constants


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pomoverride",
        description=(
            "Resolve a remote POM, build its effective model and print the "
            "dependency or plugin version overrides it manages"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("gav",
                             nargs="?",
                             help="Coordinate of the remote POM (groupId:artifactId:version)",
                             type=str)
    input_group.add_argument("--pom",
                             dest="POM_FILE",
                             help="Build overrides from a local POM file instead of a remote coordinate",
                             action="store",
                             type=str)

    parser.add_argument("--plugins",
                        dest="PLUGINS",
                        help="Extract plugin-management versions instead of dependency-management versions",
                        action="store_true")
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Remote repository as ID=URL (can be used multiple times; tried in order)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-D", "--define",
                        dest="PROPERTIES",
                        help="User property KEY=VALUE visible to interpolation and profile activation",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--local-repo",
                        dest="LOCAL_REPO",
                        help="Local repository cache directory (default: $M2_REPO or ~/.m2/repository)",
                        action="store",
                        type=str)
    parser.add_argument("--offline",
                        dest="OFFLINE",
                        help="Only use descriptors already present in the local repository",
                        action="store_true")
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"HTTP timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--validation",
                        dest="VALIDATION_LEVEL",
                        help="Model validation level (default: 3.0)",
                        action="store",
                        type=str.lower,
                        choices=list(Constants.VALIDATION_LEVEL_NAMES))

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the JSON result to this file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
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
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
