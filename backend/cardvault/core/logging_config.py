import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # uvicorn's access log already covers request lines
    logging.getLogger("httpx").setLevel(logging.WARNING)
