import logging
import sys
import os
from pathlib import Path


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Set up application logging configuration
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    # File output is opt-in; containers and tests log to stdout only
    log_dir = os.getenv("LOG_DIR")
    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(Path(log_dir) / "marketplace.log"))
        except OSError as e:
            print(f"File logging disabled: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    return logging.getLogger("marketplace")


# Create a global logger instance
logger = setup_logging(os.getenv("LOG_LEVEL", "INFO"))
