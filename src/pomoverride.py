"""pomoverride - version overrides from effective remote POMs

    Resolves a POM by coordinate (or reads a local one), merges its parent
    chain into the effective model and prints the dependency-management or
    plugin-management versions as a JSON object.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import ExitCodes
from common.logging_utils import add_file_handler, configure_logging
from args import parse_args
from cli_config import ConfigError, build_config, find_config_file, load_config
from model.errors import (
    InvalidRepository,
    MalformedCoordinate,
    ModelBuildException,
    UnresolvableArtifact,
    UnresolvableModel,
)
from model.service import EffectiveModelBuilder

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    level = args.LOG_LEVEL
    if args.QUIET and not level:
        level = "ERROR"
    configure_logging(level)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)
        logger.info("Logging to file: %s", args.LOG_FILE)


def _resolve(builder: EffectiveModelBuilder, args):
    if args.POM_FILE:
        if args.PLUGINS:
            return builder.get_local_plugin_version_overrides(args.POM_FILE)
        return builder.get_local_dependency_version_overrides(args.POM_FILE)
    if args.PLUGINS:
        return builder.get_remote_plugin_version_overrides(args.gav)
    return builder.get_remote_dependency_version_overrides(args.gav)


def _write_output(overrides, args) -> None:
    payload = json.dumps(overrides, indent=2)
    if args.OUTPUT:
        try:
            with open(args.OUTPUT, "w", encoding="utf-8") as fh:
                fh.write(payload + "\n")
        except OSError as e:
            logger.error("Could not write output file %s: %s", args.OUTPUT, e)
            sys.exit(ExitCodes.FILE_ERROR.value)
        logger.info("Wrote %d overrides to %s", len(overrides), args.OUTPUT)
    elif not args.QUIET:
        print(payload)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    try:
        config = build_config(args, load_config(find_config_file(args.CONFIG)))
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if args.POM_FILE and not os.path.isfile(args.POM_FILE):
        logger.error("POM file not found: %s", args.POM_FILE)
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        builder = EffectiveModelBuilder(config)
    except InvalidRepository as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.INPUT_ERROR.value)
    logger.debug("Using repositories: %s", ", ".join(str(r) for r in builder.repositories))

    try:
        overrides = _resolve(builder, args)
    except MalformedCoordinate as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.INPUT_ERROR.value)
    except (UnresolvableArtifact, UnresolvableModel) as e:
        logger.error("%s", e)
        for repository_id, failure in getattr(e, "failures", []):
            logger.info("  %s: %s", repository_id, failure)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except ModelBuildException as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.MODEL_ERROR.value)

    _write_output(overrides, args)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
