import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional

# handlers installed by configure_logging, replaced on the next call
_handlers: List[logging.Handler] = []


def configure_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    logger = logging.getLogger()
    logger.setLevel(level)

    for h in _handlers:
        logger.removeHandler(h)
        h.close()
    _handlers.clear()

    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s - %(message)s"
    )

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    _handlers.append(ch)

    # Rotating file, only when asked for (the daemon usually runs under journald)
    if log_file:
        fh = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5
        )
        fh.setFormatter(fmt)
        _handlers.append(fh)

    for h in _handlers:
        logger.addHandler(h)
