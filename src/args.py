"""Argument parsing functionality for nugetferry."""

import argparse
from constants import Constants


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nugetferry",
        description=(
            "nugetferry - Download a package and its dependencies from a NuGet feed "
            "with retries, then install them from a local repository"
        ),
        add_help=True,
    )

    parser.add_argument("action",
                        nargs="?",
                        help="What to do: " + ", ".join(Constants.ACTIONS) + " (prompted if omitted)",
                        type=str.lower,
                        default=None)
    parser.add_argument("-p", "--path",
                        dest="PATH",
                        help="Download directory for .nupkg artifacts (prompted if omitted)",
                        action="store",
                        type=str)
    parser.add_argument("--feed",
                        dest="FEED",
                        help="Directory for the local repository (default: <path>/" + Constants.FEED_DIR_NAME + ")",
                        action="store",
                        type=str)
    parser.add_argument("--package",
                        dest="PACKAGE",
                        help="Root package to resolve (default: configured root package)",
                        action="store",
                        type=str)
    parser.add_argument("--version",
                        dest="VERSION",
                        help="Exact version of the root package (default: latest)",
                        action="store",
                        type=str)
    parser.add_argument("--module-root",
                        dest="MODULE_ROOT",
                        help="Module path root to install into (prompted if omitted)",
                        action="store",
                        type=str)
    parser.add_argument("--gallery-url",
                        dest="GALLERY_URL",
                        help="NuGet v2 feed URL",
                        action="store",
                        type=str)
    parser.add_argument("--version-strategy",
                        dest="VERSION_STRATEGY",
                        help="How dependency constraints become versions",
                        action="store",
                        type=str.lower,
                        choices=Constants.VERSION_STRATEGIES)
    parser.add_argument("--max-depth",
                        dest="MAX_DEPTH",
                        help="Maximum dependency depth",
                        action="store",
                        type=int)

    retry_group = parser.add_mutually_exclusive_group()
    retry_group.add_argument("--max-attempts",
                             dest="MAX_ATTEMPTS",
                             help="Attempts per network call before giving up",
                             action="store",
                             type=int)
    retry_group.add_argument("--retry-forever",
                             dest="RETRY_FOREVER",
                             help="Retry failed network calls indefinitely",
                             action="store_true")
    parser.add_argument("--retry-delay",
                        dest="RETRY_DELAY",
                        help="Seconds to wait between attempts",
                        action="store",
                        type=float)

    parser.add_argument("--skip-admin-check",
                        dest="SKIP_ADMIN_CHECK",
                        help="Don't require administrator rights for install",
                        action="store_true")
    parser.add_argument("--no-input",
                        dest="NO_INPUT",
                        help="Never prompt; fail when a required value is missing",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
