"""Argument parsing functionality for modgate."""

import argparse

from constants import Commands, Constants


def _add_common_arguments(parser):
    """Options shared by every subcommand."""
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS,
                        default="INFO")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"Path to YAML configuration file (default: {Constants.DEFAULT_CONFIG_FILE})",
                        action="store",
                        type=str)
    parser.add_argument("--mod-dir",
                        dest="MOD_DIR",
                        help="Directory holding installed MODs",
                        action="store",
                        type=str)
    parser.add_argument("--data-dir",
                        dest="DATA_DIR",
                        help="Game data directory holding base and expansion MODs",
                        action="store",
                        type=str)
    parser.add_argument("--mod-list",
                        dest="MOD_LIST",
                        help=f"Path to {Constants.MOD_LIST_FILE} (default: <mod-dir>/{Constants.MOD_LIST_FILE})",
                        action="store",
                        type=str)
    parser.add_argument("--portal-url",
                        dest="PORTAL_URL",
                        help=f"MOD portal base URL (default: {Constants.REGISTRY_URL})",
                        action="store",
                        type=str)
    parser.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Show the plan without changing anything",
                        action="store_true")


def _add_jobs_argument(parser):
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help=f"Number of concurrent registry requests and downloads (default: {Constants.DEFAULT_JOBS})",
                        action="store",
                        type=int)


def build_parser():
    """Build the top-level parser with one subparser per command."""
    parser = argparse.ArgumentParser(
        prog="modgate",
        description="modgate - MOD dependency checker and lifecycle manager",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    check = subparsers.add_parser(Commands.CHECK.value,
                                  help="Validate installed MODs and the MOD list")
    _add_common_arguments(check)
    check.add_argument("--strict",
                       dest="STRICT",
                       help="Exit with a non-zero status code if warnings are present.",
                       action="store_true")

    enable = subparsers.add_parser(Commands.ENABLE.value,
                                   help="Enable MODs and their required dependencies")
    _add_common_arguments(enable)
    enable.add_argument("MODS", nargs="+", metavar="NAME", help="MOD names")

    disable = subparsers.add_parser(Commands.DISABLE.value,
                                    help="Disable MODs and every MOD that requires them")
    _add_common_arguments(disable)
    disable.add_argument("MODS", nargs="*", metavar="NAME", help="MOD names")
    disable.add_argument("--all",
                         dest="ALL",
                         help="Disable every MOD except base",
                         action="store_true")

    install = subparsers.add_parser(Commands.INSTALL.value,
                                    help="Install MODs and their required dependencies from the portal")
    _add_common_arguments(install)
    _add_jobs_argument(install)
    install.add_argument("MODS", nargs="+", metavar="SPEC",
                         help="MOD spec: name, name@X.Y.Z or name@latest")

    uninstall = subparsers.add_parser(Commands.UNINSTALL.value,
                                      help="Remove installed MODs")
    _add_common_arguments(uninstall)
    uninstall.add_argument("MODS", nargs="*", metavar="SPEC",
                           help="MOD spec: name (every version) or name@X.Y.Z")
    uninstall.add_argument("--all",
                           dest="ALL",
                           help="Uninstall every MOD except base and expansions",
                           action="store_true")

    update = subparsers.add_parser(Commands.UPDATE.value,
                                   help="Update MODs to their latest release")
    _add_common_arguments(update)
    _add_jobs_argument(update)
    update.add_argument("MODS", nargs="*", metavar="NAME",
                        help="MOD names (default: every installed MOD)")

    listing = subparsers.add_parser(Commands.LIST.value,
                                    help="List the entries of the MOD list")
    _add_common_arguments(listing)
    listing.add_argument("--format",
                         dest="FORMAT",
                         help="Output format",
                         action="store",
                         type=str.lower,
                         choices=Constants.LIST_FORMATS,
                         default="plain")

    download = subparsers.add_parser(Commands.DOWNLOAD.value,
                                     help="Download MOD releases without changing the MOD list")
    _add_common_arguments(download)
    _add_jobs_argument(download)
    download.add_argument("-o", "--output-dir",
                          dest="OUTPUT_DIR",
                          help="Directory to save the archives to (default: current directory)",
                          action="store",
                          type=str,
                          default=".")
    download.add_argument("MODS", nargs="+", metavar="SPEC",
                          help="MOD spec: name, name@X.Y.Z or name@latest")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
