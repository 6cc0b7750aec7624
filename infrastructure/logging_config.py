import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the root logger"""
    root = logging.getLogger()
    if not any(getattr(h, "_boston_suites", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._boston_suites = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
