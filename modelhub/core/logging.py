import logging

from modelhub.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # keep SQL echo out of the app log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
