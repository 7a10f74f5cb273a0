import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Route all log records to stdout with a timestamped format."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"))
    root_logger.addHandler(handler)

    # Per-request access lines only when debugging.
    access_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    logging.getLogger("aiohttp.access").setLevel(access_level)

    logging.info("Logging initialized: level=%s", logging.getLevelName(numeric_level))
