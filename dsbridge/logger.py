import logging
import logging.handlers
import typing
from enum import StrEnum


# Set logging levels
for level, names in {
    logging.WARNING: (
        'websocket',  # we dont need websocket debug messages
    ),
}.items():
    for name in names:
        logging.getLogger(name).setLevel(level)


TRACE = logging.TRACE = 6

LOGFILE = '/var/log/dsbridge.log'
DEFAULT_LOGFORMAT = '[%(asctime)s] (%(levelname)s) %(name)s.%(funcName)s():%(lineno)d - %(message)s'
TIME_FORMAT = '%Y/%m/%d %H:%M:%S'


def trace(self, message, *args, **kws):
    if self.isEnabledFor(logging.TRACE):
        self._log(logging.TRACE, message, args, **kws)


logging.addLevelName(logging.TRACE, "TRACE")
logging.Logger.trace = trace


class ConsoleLogFormatter(logging.Formatter):
    """Format the console log messages"""

    class ConsoleColor(StrEnum):
        YELLOW  = '\033[1;33m'  # (warning)
        GREEN   = '\033[1;32m'  # (info)
        RED     = '\033[1;31m'  # (error)
        HIGHRED = '\033[1;41m'  # (critical)
        RESET   = '\033[1;m'    # Reset

    def format(self, record):
        """Set the color based on the log level.

            Returns:
                logging.Formatter class.
        """
        ConsoleColor = self.ConsoleColor
        color_mapping = {
            logging.CRITICAL: ConsoleColor.HIGHRED,
            logging.ERROR   : ConsoleColor.HIGHRED,
            logging.WARNING : ConsoleColor.RED,
            logging.INFO    : ConsoleColor.GREEN,
            logging.DEBUG   : ConsoleColor.YELLOW,
        }

        color_start = color_mapping.get(record.levelno, ConsoleColor.RESET)
        record.levelname = color_start + record.levelname + ConsoleColor.RESET

        return logging.Formatter.format(self, record)


class Logger:
    """Pseudo-Class for Logger - Wrapper for logging module"""
    def __init__(self, application_name: str, debug_level: str = 'DEBUG', log_format: str = DEFAULT_LOGFORMAT):
        self.application_name = application_name
        self.debug_level = debug_level
        self.log_format = log_format

    def getLogger(self):
        return logging.getLogger(self.application_name)

    def configure_logging(self, output_option: str, logfile: str = LOGFILE):
        """
        Configure the log output to file or console.
            `output_option` str: Default is `file`, can be set to `console`.
        """
        if output_option.lower() == 'console':
            handler = logging.StreamHandler()
            handler.setFormatter(ConsoleLogFormatter(self.log_format, datefmt=TIME_FORMAT))
        else:
            handler = logging.handlers.RotatingFileHandler(logfile, 'a', 10485760, 5, 'utf-8')
            handler.setFormatter(logging.Formatter(self.log_format, TIME_FORMAT))

        logging.root.addHandler(handler)
        logging.root.setLevel(logging.getLevelName(self.debug_level.upper()))
        return handler


def setup_logging(name: str, debug_level: typing.Optional[str], log_handler: typing.Optional[str]):
    _logger = Logger(name, debug_level or 'WARNING')

    if log_handler == 'console':
        _logger.configure_logging('console')
    else:
        _logger.configure_logging('file')

    return _logger.getLogger()
