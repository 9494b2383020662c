'''
Lazily configured loggers, so importing tidyurl never touches the global logging setup.
'''
import logging
import os
from typing import Optional, Union, cast
import warnings

Level = int
LevelIsh = Optional[Union[Level, str]]


def mklevel(level: LevelIsh) -> Level:
    # env variable takes precedence, handy when running under the server
    glevel = os.environ.get('TIDYURL_LOGS', None)
    if glevel is not None:
        level = glevel
    if level is None:
        return logging.NOTSET
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper())


FORMAT = '{start}[%(levelname)-7s %(asctime)s %(name)s %(filename)s:%(lineno)d]{end} %(message)s'
FORMAT_COLOR   = FORMAT.format(start='%(color)s', end='%(end_color)s')
FORMAT_NOCOLOR = FORMAT.format(start='', end='')
DATEFMT = '%Y-%m-%d %H:%M:%S'

_init_done = 'lazylogger_init_done'


def setup_logger(logger: logging.Logger, level: LevelIsh) -> None:
    lvl = mklevel(level)
    try:
        import logzero # type: ignore[import]
    except ModuleNotFoundError:
        warnings.warn("You might want to install 'logzero' for nice colored logs!")
        logzero = None

    logger.addFilter(AddExceptionTraceback())
    if logzero is not None:
        formatter = logzero.LogFormatter(fmt=FORMAT_COLOR, datefmt=DATEFMT)
        logzero.setup_logger(logger.name, level=lvl, formatter=formatter)
        return

    h = logging.StreamHandler()
    logger.setLevel(lvl)
    h.setLevel(lvl)
    h.setFormatter(logging.Formatter(fmt=FORMAT_NOCOLOR, datefmt=DATEFMT))
    logger.addHandler(h)
    logger.propagate = False # otherwise messages get duplicated by the root logger


class LazyLogger(logging.Logger):
    def __new__(cls, name: str, level: LevelIsh = 'INFO') -> 'LazyLogger':
        logger = logging.getLogger(name)

        # called prior to all _log calls, so handlers are only attached on first use
        def isEnabledFor_lazyinit(*args, logger=logger, orig=logger.isEnabledFor, **kwargs) -> bool:
            if not getattr(logger, _init_done, False):
                setup_logger(logger, level=level)
                setattr(logger, _init_done, True)
                logger.isEnabledFor = orig # restore the callback
            return orig(*args, **kwargs)

        # guard against wrapping twice, would recurse forever otherwise
        if not hasattr(logger, _init_done):
            setattr(logger, _init_done, False)
            logger.isEnabledFor = isEnabledFor_lazyinit  # type: ignore[assignment]
        return cast(LazyLogger, logger)


# logger.error(exc) doesn't attach the traceback by default
class AddExceptionTraceback(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        s = super().filter(record)
        if s is False:
            return False
        if record.levelname == 'ERROR':
            exc = record.msg
            if isinstance(exc, BaseException):
                if record.exc_info is None or record.exc_info == (None, None, None):
                    record.exc_info = (type(exc), exc, exc.__traceback__)
        return bool(s)
