# app/logging.py
import json
import logging
import os
from typing import Any, Dict, Optional


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    # One line per call, keys sorted so log lines diff cleanly
    logger.info("tool_call %s %s", name, json.dumps(args, sort_keys=True, default=str))
