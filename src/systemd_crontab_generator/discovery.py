'''enumerate every crontab-like input, in a stable order'''
import logging
import os
from enum import Enum
from typing import NamedTuple, Optional

from .config import Features, Paths
from .errors import DiscoveryError, Notice, ParseError, Report
from .lexer import Assignment, Line, read_crontab

log = logging.getLogger(__name__)

# this is dumb, but gets the job done
PART2TIMER = {
    'apt-compat': 'apt-daily',
    'dpkg': 'dpkg-db-backup',
    'plocate': 'plocate-updatedb',
    'sysstat': 'sysstat-summary',
}

CROND2TIMER = {
    'ntpsec': 'ntpsec-rotate-stats',
    'ntpsec-ntpviz': 'ntpviz-daily',
    'sysstat': 'sysstat-collect',
}


class SourceKind(Enum):
    CRONTAB = 'crontab'
    CROND = 'cron.d'
    PERIODIC = 'periodic'
    ANACRONTAB = 'anacrontab'
    USER = 'user'

    @property
    def withuser(self) -> bool:
        return self in (SourceKind.CRONTAB, SourceKind.CROND)


class Origin(NamedTuple):
    kind:SourceKind
    path:str
    lineno:int = 0

    @property
    def basename(self) -> str:
        return os.path.basename(self.path)

    def __str__(self) -> str:
        if self.lineno:
            return '%s:%d' % (self.path, self.lineno)
        return self.path


class RawEntry(NamedTuple):
    origin:Origin
    user:Optional[str]
    environment:dict[str, str]
    schedule:str
    command:str
    line:str
    jobid:Optional[str] = None


def files(dirname:str) -> list[str]:
    '''regular files of a directory, sorted; [] when it does not exist'''
    try:
        names = sorted(os.listdir(dirname))
    except FileNotFoundError:
        return []
    except NotADirectoryError:
        return []
    except OSError as e:
        raise DiscoveryError('cannot list directory: %s' % e.strerror, dirname)
    return [path for path in (os.path.join(dirname, name) for name in names)
            if os.path.isfile(path)]


def is_backup(name:str) -> bool:
    if '.dpkg-' in name:
        return True
    if '~' in name:
        return True
    if name.startswith('.'):
        return True
    return False


def is_masked(paths:Paths, fullname:str, distro_mapping:dict[str, str]) -> Optional[str]:
    '''check if distribution also provide a native .timer'''
    name = os.path.basename(fullname)
    for unit_dir in paths.unit_dirs:
        unit_file = os.path.join(unit_dir, '%s.timer' % name)
        if os.path.lexists(unit_file):
            if os.path.realpath(unit_file) == '/dev/null':
                return 'it is masked'
            if os.path.isfile(unit_file) and os.path.getsize(unit_file) == 0:
                return 'it is masked'
            return 'native timer is present'

    name_distro = '%s.timer' % distro_mapping.get(name, name)
    for unit_dir in paths.unit_dirs:
        if os.path.exists(os.path.join(unit_dir, name_distro)):
            return 'there is %s' % name_distro

    return None


def split_line(origin:Origin, line:str, environment:dict[str, str],
               owner:Optional[str]=None) -> RawEntry:
    '''cut one job line into schedule, user and command, per dialect'''
    parts = line.split(' ')

    if origin.kind is SourceKind.ANACRONTAB:
        # period delay job-identifier command
        if len(parts) < 4:
            raise ParseError('truncated line', origin, line)
        return RawEntry(origin, None, environment, ' '.join(parts[0:2]),
                        ' '.join(parts[3:]), line, parts[2])

    withuser = origin.kind.withuser
    width = 1 if line.startswith('@') else 5
    if len(parts) < width + 1 + int(withuser):
        raise ParseError('truncated line', origin, line)

    schedule = ' '.join(parts[0:width])
    if withuser:
        user:Optional[str] = parts[width]
        command = parts[width + 1:]
    else:
        user = owner
        command = parts[width:]
    return RawEntry(origin, user, environment, schedule, ' '.join(command), line)


def parse_crontab(filename:str, kind:SourceKind, report:Report,
                  owner:Optional[str]=None) -> tuple[list[RawEntry], dict[str, str]]:
    '''entries of one file, and its environment once fully read'''
    try:
        tokens = read_crontab(filename)
    except OSError as e:
        raise DiscoveryError('cannot read file: %s' % e.strerror, Origin(kind, filename))

    entries = []
    environment:dict[str, str] = dict()
    for token in tokens:
        if isinstance(token, Assignment):
            if token.key == 'PERSISTENT' and token.value in ('auto', ''):
                environment.pop(token.key, None)
            else:
                environment[token.key] = token.value
            continue

        assert isinstance(token, Line)
        origin = Origin(kind, filename, token.lineno)
        try:
            entries.append(split_line(origin, token.text, dict(environment), owner))
        except ParseError as e:
            report.add(e)
    return entries, environment


def with_mailto(entries:list[RawEntry], mailto:Optional[str]) -> list[RawEntry]:
    if not mailto:
        return entries
    return [e._replace(environment=dict(e.environment, MAILTO=mailto))
            if 'MAILTO' not in e.environment else e
            for e in entries]


def discover_crontab(paths:Paths, features:Features, report:Report) -> tuple[list[RawEntry], Optional[str]]:
    if not os.path.exists(paths.crontab):
        return [], None

    entries, environment = parse_crontab(paths.crontab, SourceKind.CRONTAB, report)
    if not features.run_parts:
        # legacy boilerplate, the directories are handled natively
        legacy = ['/etc/cron.' + period for period in paths.periodic]
        entries = [e for e in entries
                   if not any(directory in e.command for directory in legacy)]
    return entries, environment.get('MAILTO')


def discover_crond(paths:Paths, report:Report, mailto:Optional[str]) -> list[RawEntry]:
    entries = []
    for filename in files(paths.crond):
        basename = os.path.basename(filename)
        if is_backup(basename):
            log.debug('ignoring %s', filename)
            continue
        reason = is_masked(paths, filename, CROND2TIMER)
        if reason:
            report.add(Notice('ignoring because %s' % reason, Origin(SourceKind.CROND, filename)))
            continue
        try:
            found, _ = parse_crontab(filename, SourceKind.CROND, report)
        except DiscoveryError as e:
            report.add(e)
            continue
        entries.extend(with_mailto(found, mailto))
    return entries


def discover_periodic(paths:Paths, report:Report, mailto:Optional[str]) -> list[RawEntry]:
    entries = []
    for period, directory in paths.periodic.items():
        try:
            scripts = files(directory)
        except DiscoveryError as e:
            report.add(e)
            continue
        for filename in scripts:
            basename = os.path.basename(filename)
            if is_backup(basename) or basename == '0anacron':
                log.debug('ignoring %s', filename)
                continue
            reason = is_masked(paths, filename, PART2TIMER)
            if reason:
                report.add(Notice('ignoring because %s' % reason, Origin(SourceKind.PERIODIC, filename)))
                continue
            origin = Origin(SourceKind.PERIODIC, filename)
            entries.append(RawEntry(origin, None, dict(), period, filename,
                                    filename, period + '-' + basename))
    return with_mailto(entries, mailto)


def discover_user(paths:Paths, report:Report) -> list[RawEntry]:
    entries = []
    for filename in files(paths.statedir):
        basename = os.path.basename(filename)
        # temporary files of crontab -e
        if '.' in basename:
            continue
        try:
            found, _ = parse_crontab(filename, SourceKind.USER, report, owner=basename)
        except DiscoveryError as e:
            report.add(e)
            continue
        entries.extend(found)
    return entries


def discover(paths:Paths, features:Features, report:Report) -> list[RawEntry]:
    '''all entries: system crontab, drop-ins, periodic scripts,
       anacrontab, then per-user crontabs'''
    entries:list[RawEntry] = []
    mailto = None

    try:
        found, mailto = discover_crontab(paths, features, report)
        entries.extend(found)
    except DiscoveryError as e:
        report.add(e)

    try:
        entries.extend(discover_crond(paths, report, mailto))
    except DiscoveryError as e:
        report.add(e)

    if not features.run_parts:
        entries.extend(discover_periodic(paths, report, mailto))

    if os.path.exists(paths.anacrontab):
        try:
            found, _ = parse_crontab(paths.anacrontab, SourceKind.ANACRONTAB, report)
            entries.extend(found)
        except DiscoveryError as e:
            report.add(e)

    try:
        entries.extend(discover_user(paths, report))
    except DiscoveryError as e:
        report.add(e)

    log.debug('%d entries discovered', len(entries))
    return entries
