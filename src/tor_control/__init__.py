"""Client for dispatching commands to a Tor control port."""

import pathlib
import sys

from loguru import logger

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


def get_version() -> str:
    """Read version from pyproject.toml."""
    current_dir = pathlib.Path(__file__).parent
    for parent in [current_dir, *current_dir.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            with pyproject_path.open("rb") as f:
                pyproject_data = tomllib.load(f)
            return pyproject_data["project"]["version"]

    # Not running from a source checkout
    return "0.0.0"


__version__ = get_version()

# Silent when used as a library; configure_logging turns it back on
logger.disable("tor_control")
