"""nugetferry - resilient NuGet/PowerShell Gallery download and offline install

    Raises:
        SystemExit: Always, with one of the ExitCodes values

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from args import parse_args
from cli_config import apply_cli_overrides, load_config
from cli_prompt import normalize_action, prompt_action, prompt_module_root, prompt_path
from common.fetcher import Fetcher, RetryPolicy
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import Actions, Constants, ExitCodes
from errors import (
    FetchError,
    PackageManagerError,
    RepositoryBuildError,
    ResolutionDepthError,
    SelectionError,
)
from installer import Installer
from package_manager import PowerShellPackageManager, module_path_candidates
from privileges import is_admin
from registry.nuget.client import GalleryClient
from repository import RepositoryBuilder
from resolver import DependencyResolver

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()
    if getattr(args, "LOG_FILE", None):
        add_file_handler(args.LOG_FILE)
        logger.info("Logging to file: %s", args.LOG_FILE)


def _exit(code: ExitCodes):
    sys.exit(code.value)


def _interactive(args) -> bool:
    return not getattr(args, "NO_INPUT", False) and sys.stdin.isatty()


def resolve_action(args) -> str:
    """Return the requested action, prompting when allowed.

    Raises:
        SelectionError: If the action is invalid or missing.
    """
    if args.action:
        return normalize_action(args.action)
    if _interactive(args):
        return prompt_action()
    raise SelectionError("No action given; pass one of: " + ", ".join(Constants.ACTIONS))


def resolve_path(args) -> str:
    if args.PATH:
        return args.PATH
    if _interactive(args):
        return prompt_path()
    raise SelectionError("No download directory given; pass --path.")


def resolve_module_root(args) -> str:
    if args.MODULE_ROOT:
        return args.MODULE_ROOT
    candidates = module_path_candidates()
    if _interactive(args):
        return prompt_module_root(candidates)
    raise SelectionError("No module root given; pass --module-root.")


def tool_launcher() -> str:
    """Launcher for nuget.exe: configured value, else mono off Windows."""
    if Constants.NUGET_TOOL_LAUNCHER:
        return Constants.NUGET_TOOL_LAUNCHER
    return "" if os.name == "nt" else "mono"


def run_download(args, fetcher: Fetcher, path: str):
    """Resolve the root package and download its dependency closure into ``path``."""
    client = GalleryClient(fetcher, base_url=Constants.GALLERY_URL)
    resolver = DependencyResolver(
        client,
        path,
        strategy=Constants.VERSION_STRATEGY,
        max_depth=Constants.MAX_RESOLUTION_DEPTH,
    )
    package = args.PACKAGE or Constants.DEFAULT_ROOT_PACKAGE
    logger.info("Resolving %s%s", package, f" {args.VERSION}" if args.VERSION else "")
    return resolver.resolve(package, args.VERSION)


def run_install(fetcher: Fetcher, path: str, feed: str, module_root: str, identities=None):
    """Build the local repository from ``path`` and install into ``module_root``."""
    builder = RepositoryBuilder(
        fetcher,
        os.path.join(path, Constants.NUGET_TOOL_FILE),
        tool_url=Constants.NUGET_TOOL_URL,
        launcher=tool_launcher(),
    )
    installer = Installer(
        builder,
        PowerShellPackageManager(Constants.POWERSHELL_EXECUTABLE),
        path,
        feed,
        repository_name=Constants.REPOSITORY_NAME,
        meta_package=Constants.META_PACKAGE,
    )
    return installer.install_all(module_root, identities)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    load_config(args)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        action = resolve_action(args)
    except SelectionError as exc:
        logger.error("%s", exc)
        _exit(ExitCodes.INVALID_SELECTION)

    do_download = action in (Actions.DOWNLOAD.value, Actions.BOTH.value)
    do_install = action in (Actions.INSTALL.value, Actions.BOTH.value)

    if do_install and not getattr(args, "SKIP_ADMIN_CHECK", False) and not is_admin():
        logger.error("Installing modules requires administrator privileges.")
        _exit(ExitCodes.NOT_ADMIN)

    try:
        path = os.path.abspath(resolve_path(args))
        module_root = resolve_module_root(args) if do_install else None
    except SelectionError as exc:
        logger.error("%s", exc)
        _exit(ExitCodes.INVALID_SELECTION)
    feed = os.path.abspath(args.FEED) if args.FEED else os.path.join(path, Constants.FEED_DIR_NAME)

    fetcher = Fetcher(RetryPolicy.from_constants())
    identities = None

    if do_download:
        try:
            context = run_download(args, fetcher, path)
        except FetchError as exc:
            logger.error("Download aborted: %s", exc)
            _exit(ExitCodes.CONNECTION_ERROR)
        except ResolutionDepthError as exc:
            logger.error("Download aborted: %s", exc)
            _exit(ExitCodes.FILE_ERROR)
        identities = context.resolved
        if not identities:
            logger.error("Nothing was resolved.")
            _exit(ExitCodes.FILE_ERROR)

    if do_install:
        try:
            report = run_install(fetcher, path, feed, module_root, identities)
        except FetchError as exc:
            logger.error("Install aborted: %s", exc)
            _exit(ExitCodes.CONNECTION_ERROR)
        except (RepositoryBuildError, PackageManagerError) as exc:
            logger.error("Install aborted: %s", exc)
            if getattr(exc, "output", ""):
                logger.error("%s", exc.output)
            _exit(ExitCodes.FILE_ERROR)
        if not report.ok:
            logger.warning("One or more packages failed to install.")
            _exit(ExitCodes.PARTIAL_FAILURE)

    _exit(ExitCodes.SUCCESS)


if __name__ == "__main__":
    main()
