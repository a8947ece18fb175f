import logging
import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, log_file: str = "ingest.log") -> None:
    """Send pipeline logs to logs/<log_file> and stderr. Safe to call more than once."""
    root = logging.getLogger()
    if getattr(root, "_ingest_configured", False):
        return

    logs_dir = os.path.join(BASE_DIR, "logs")
    os.makedirs(logs_dir, exist_ok=True)
    log_path = os.path.join(logs_dir, log_file)

    logging.basicConfig(
        format=LOG_FORMAT,
        level=level,
        handlers=[
            logging.FileHandler(log_path, mode="a"),
            logging.StreamHandler(),
        ],
    )
    root._ingest_configured = True
