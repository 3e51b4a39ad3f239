import os
import stat
from typing import Optional

# build-time values, normally substituted by the packaging
STATEDIR = '/var/spool/cron/crontabs'
USE_RUNPARTS = False
USE_LOGLEVELMAX = 'no'
UNIT_DIRS = ['/lib/systemd/system', '/etc/systemd/system', '/run/systemd/system']

PERIODS = ['hourly', 'daily', 'weekly', 'monthly', 'yearly']

def which(exe:str, paths:Optional[str]=None) -> Optional[str]:
    if paths is None:
        paths = os.environ.get('PATH', '/usr/bin:/bin')
    for path in paths.split(os.pathsep):
        if not path:
            continue
        abspath = os.path.join(path, exe)
        try:
            statbuf = os.stat(abspath)
        except OSError:
            continue
        if stat.S_ISREG(statbuf.st_mode) and stat.S_IMODE(statbuf.st_mode) & 0o111:
            return abspath

    return None


class Paths:
    '''where crontabs are read from'''
    crontab:str
    crond:str
    statedir:str
    periodic:dict[str, str]
    anacrontab:str
    unit_dirs:list[str]

    def __init__(self, root:str='/', statedir:str=STATEDIR,
                 unit_dirs:Optional[list[str]]=None) -> None:
        def at(path:str) -> str:
            return os.path.join(root, path.lstrip('/'))

        self.crontab = at('/etc/crontab')
        self.crond = at('/etc/cron.d')
        self.statedir = at(statedir)
        self.periodic = {period: at('/etc/cron.' + period) for period in PERIODS}
        self.anacrontab = at('/etc/anacrontab')
        if unit_dirs is None:
            unit_dirs = UNIT_DIRS
        self.unit_dirs = [at(d) for d in unit_dirs]


class Features:
    '''optional behaviours, decided once at startup

    Every switch is a plain boolean; the defaults enable everything
    so that all combinations stay reachable from the tests.'''

    persistent:bool = True
    randomized_delay:bool = True
    boot:bool = True
    minutely:bool = True
    hourly:bool = True
    daily:bool = True
    weekly:bool = True
    monthly:bool = True
    quarterly:bool = True
    semi_annually:bool = True
    yearly:bool = True
    run_parts:bool = USE_RUNPARTS
    loglevelmax:str = USE_LOGLEVELMAX
    sendmail:bool = False

    def __init__(self, **switches) -> None:
        for key, value in switches.items():
            if not hasattr(type(self), key):
                raise TypeError('unknown feature %r' % key)
            setattr(self, key, value)

    @classmethod
    def detect(cls, **switches) -> 'Features':
        '''probe the host for the bits that are not build options'''
        switches.setdefault('sendmail', bool(which('sendmail', '/usr/sbin:/usr/lib')))
        return cls(**switches)

    def __repr__(self) -> str:
        off = [k for k, v in vars(type(self)).items()
               if isinstance(v, bool) and not getattr(self, k)]
        return 'Features(disabled=%s)' % ','.join(off)
