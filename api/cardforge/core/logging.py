import logging
import sys
from typing import Optional


def setup_logging(level: str = "INFO") -> None:
    """
    One stdout handler on the root logger, pipe-separated fields.
    Unknown level names fall back to INFO.
    """
    numeric_level: Optional[int] = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)

    # uvicorn --reload re-imports the app; avoid stacking handlers
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
