import sys
from loguru import logger

_TIMESTAMP = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
_BODY = "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"


def setup_logging(level="INFO", show_time=True, log_file=None):
    """Route loguru output for an ibpm run.

    Parameters
    ----------
    level : str
        Minimum level shown (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL).
    show_time : bool
        Prefix each record with a timestamp.
    log_file : str or Path, optional
        Also write the records, uncoloured, to this file.
    """
    log_format = (_TIMESTAMP + _BODY) if show_time else _BODY

    # Replace whatever sinks are installed
    logger.remove()
    logger.add(sys.stderr, format=log_format, level=level, colorize=True)
    if log_file is not None:
        logger.add(str(log_file), format=log_format, level=level, colorize=False)

    return logger
