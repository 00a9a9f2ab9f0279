"""modgate - MOD dependency checker and lifecycle manager

    Exits with one of the codes in ``constants.ExitCodes``.
"""
import logging
import sys

from args import parse_args
from cli_config import resolve_settings
from cli_mod import COMMANDS, _setup_logging
from common.logging_utils import extra_context, is_debug_enabled
from constants import ExitCodes
from errors import (
    ConfigError,
    DownloadError,
    ManifestError,
    ModListError,
    ModgateError,
    RegistryError,
)

logger = logging.getLogger(__name__)


def exit_code_for(exc: ModgateError) -> ExitCodes:
    """Map an error family to the process exit code."""
    if isinstance(exc, (ConfigError, ManifestError, ModListError)):
        return ExitCodes.FILE_ERROR
    if isinstance(exc, (RegistryError, DownloadError)):
        return ExitCodes.CONNECTION_ERROR
    return ExitCodes.PLANNING_ERROR


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main", command=args.COMMAND)
        )

    try:
        settings = resolve_settings(args)
        code = COMMANDS[args.COMMAND](args, settings)
    except ModgateError as exc:
        logger.error(exc.message)
        sys.exit(exit_code_for(exc).value)
    except OSError as exc:
        logger.error("File system error: %s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome=code.name.lower())
        )
    sys.exit(code.value)


if __name__ == "__main__":
    main()
