import logging
import os
import sys
from enum import IntEnum

SELF = 'systemd-crontab-generator'

class Log(IntEnum):
    EMERG = 0
    ALERT = 1
    CRIT = 2
    ERR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7

    @classmethod
    def from_level(cls, levelno:int) -> 'Log':
        if levelno >= logging.CRITICAL:
            return cls.CRIT
        if levelno >= logging.ERROR:
            return cls.ERR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            # notices: skipped files, masked crontabs
            return cls.NOTICE
        return cls.DEBUG


class KmsgHandler(logging.Handler):
    '''the journal is not up yet when generators run, use the kernel log'''

    def __init__(self, path:str='/dev/kmsg') -> None:
        super().__init__()
        self.path = path

    def emit(self, record:logging.LogRecord) -> None:
        try:
            message = self.format(record)
            with open(self.path, 'w', encoding='utf8') as kmsg:
                kmsg.write('<%d>%s[%d]: %s\n' % (Log.from_level(record.levelno),
                                                 SELF, os.getpid(), message))
        except Exception:
            self.handleError(record)


def setup_logging(run_by_systemd:bool, verbose:bool=False) -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler:logging.Handler
    if run_by_systemd:
        handler = KmsgHandler()
        handler.setFormatter(logging.Formatter('%(message)s'))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(SELF + ': %(message)s'))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
