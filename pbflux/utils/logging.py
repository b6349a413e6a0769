import sys
from loguru import logger

def setup_logging(level="INFO", show_time=True):
    """Configure loguru for pbflux.

    Parameters
    ----------
    level : str
        Logging level (TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
    show_time : bool
        Whether to prefix records with a timestamp.
    """
    logger.remove()

    fields = "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    if show_time:
        fields = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | " + fields

    logger.add(sys.stderr, format=fields, level=level, colorize=True)

    return logger
