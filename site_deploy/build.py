"""
Front-end build step.

Runs ``npm install`` (only when ``node_modules`` is missing) and then
``npm run build`` inside the application directory.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from site_deploy.exceptions import BuildError
from site_deploy.log import log_success

logger = logging.getLogger(__name__)

BUILD_TOOL: str = "npm"
DEPENDENCY_MARKER: str = "node_modules"
INSTALL_COMMAND: List[str] = [BUILD_TOOL, "install"]
BUILD_COMMAND: List[str] = [BUILD_TOOL, "run", "build"]


def check_build_tool(tool: str = BUILD_TOOL) -> str:
    """Returns the full path of the build tool, or raises BuildError if it isn't on PATH."""
    path: Optional[str] = shutil.which(tool)
    if path is None:
        logger.error(f"'{tool}' was not found on PATH. Install Node.js before deploying.")
        raise BuildError(f"Build tool '{tool}' not found")
    logger.debug(f"Using {tool} at {path}")
    return path


def _run(command: List[str], app_dir: Path, runner: Callable[..., subprocess.CompletedProcess]) -> None:
    logger.info(f"Running: {' '.join(command)} (in {app_dir})")
    try:
        result = runner(command, cwd=str(app_dir), check=False)
    except OSError as e:
        raise BuildError(f"Could not run '{' '.join(command)}'", str(e)) from e
    if result.returncode != 0:
        logger.error(f"'{' '.join(command)}' exited with status {result.returncode}")
        raise BuildError(
            f"'{' '.join(command)}' failed",
            f"exit status {result.returncode}",
            returncode=result.returncode,
        )


def build_app(app_dir: Path, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> None:
    """
    Installs dependencies if needed and builds the application.

    A present ``node_modules`` directory counts as "already installed"; it is
    not checked for staleness. The build output directory is not checked here,
    the upload step does that.

    Args:
        app_dir (Path): The front-end project directory.
        runner: Callable with the ``subprocess.run`` signature.

    Raises:
        BuildError: If either command exits non-zero.
    """
    app_dir = Path(app_dir)
    logger.info(f"--- Building application in {app_dir} ---")

    if (app_dir / DEPENDENCY_MARKER).is_dir():
        logger.info(f"'{DEPENDENCY_MARKER}' found, skipping dependency install.")
    else:
        _run(INSTALL_COMMAND, app_dir, runner)

    _run(BUILD_COMMAND, app_dir, runner)
    log_success("Application build finished.")
