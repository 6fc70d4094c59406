from __future__ import annotations

import logging
import sys
from typing import List, Optional

from script_src_generator.core.handlers.generate_handler import handle_generate
from script_src_generator.core.managers.config_manager import config_manager
from script_src_generator.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the script-src-generator command."""
    configure_logger(
        config_manager.get_nested("debug.level", "WARNING"),
        silenced_loggers=config_manager.get_nested("debug.silenced_loggers"),
    )
    args = sys.argv[1:] if argv is None else argv
    logger.debug("Starting with arguments: %s", args)
    return handle_generate(args)


if __name__ == "__main__":
    sys.exit(main())
