# app/services/housekeeping.py
import logging

from app.services.backend import KeyValueBackend

logger = logging.getLogger(__name__)


def flush_on_startup(backend: KeyValueBackend, enabled: bool) -> bool:
    """
    Wipe the whole backend before serving. Destroys data outside our prefixes
    too, hence off unless FLUSH_ON_STARTUP is set.
    """
    if not enabled:
        return False
    backend.flush_all()
    logger.info("Flushed all backend entries on startup")
    return True
