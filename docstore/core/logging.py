import logging


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging unless the host (uvicorn, pytest) already did."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level.upper(),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root.setLevel(level.upper())
