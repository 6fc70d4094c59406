# src/script_src_generator/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving the paths the generator reads from.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the script_src_generator package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        """Returns the path of the bundled settings.json."""
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_user_settings_file() -> Path:
        """
        Returns the path of the optional per-user override file.
        (e.g., ~/.script-src-generator.json)
        """
        return Path.home() / ".script-src-generator.json"
