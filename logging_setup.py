import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)
    # uvicorn's own access log duplicates the request middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
