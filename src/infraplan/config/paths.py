"""Where the config layers live."""

import os
from pathlib import Path
from typing import Optional

CONFIG_DIRNAME = ".infraplan"
CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "INFRAPLAN_HOME"


def get_defaults_path() -> Path:
    """Packaged defaults shipped with infraplan."""
    return Path(__file__).parent / "defaults.yaml"


def get_user_config_path() -> Path:
    """$INFRAPLAN_HOME/config.yaml, or ~/.infraplan/config.yaml when unset."""
    home = os.environ.get(HOME_ENV_VAR)
    base = Path(home).expanduser() if home else Path.home() / CONFIG_DIRNAME
    return base / CONFIG_FILENAME


def get_project_config_path(project_dir: Optional[Path] = None) -> Optional[Path]:
    """.infraplan/config.yaml under project_dir (default: cwd), if present."""
    project_config = (project_dir or Path.cwd()) / CONFIG_DIRNAME / CONFIG_FILENAME
    if project_config.is_file():
        return project_config
    return None
