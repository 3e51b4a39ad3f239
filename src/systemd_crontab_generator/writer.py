'''
Bring the target directory in line with the units of this run.

Only files carrying the generator's marker, and the cron.target.wants
symlinks that point at them, are considered ours: anything else in the
directory is left alone. Every file lands through a temporary file in
the same directory renamed over the final name, so a reader sees either
the old content or the new one. A failure on one file is reported and
does not stop the others.
'''
import hashlib
import logging
import os
import tempfile
from typing import Callable, Iterable, Optional

from .errors import FatalError, Report, WriteError
from .naming import PREFIX
from .units import MARKER, WANTS_DIR, GeneratedUnit

log = logging.getLogger(__name__)

SUFFIXES = ('.timer', '.service', '.sh')
TMP_SUFFIX = '.tmp'


class SyncResult:
    written:list[str]
    unchanged:list[str]
    removed:list[str]
    failed:list[str]

    def __init__(self) -> None:
        self.written = []
        self.unchanged = []
        self.removed = []
        self.failed = []

    @property
    def changed(self) -> bool:
        return bool(self.written or self.removed)

    def __repr__(self) -> str:
        return 'SyncResult(written=%d, unchanged=%d, removed=%d, failed=%d)' % (
            len(self.written), len(self.unchanged), len(self.removed), len(self.failed))


def digest(data:bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def atomic_write(path:str, content:str, mode:int=0o644) -> None:
    directory, basename = os.path.split(path)
    tmp = tempfile.NamedTemporaryFile(mode='w', encoding='utf8', dir=directory,
                                      prefix='.' + basename + '.', suffix=TMP_SUFFIX,
                                      delete=False)
    try:
        with tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp.name, mode)
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass
        raise


def atomic_symlink(target:str, path:str) -> None:
    directory, basename = os.path.split(path)
    tmp = os.path.join(directory, '.%s.%d%s' % (basename, os.getpid(), TMP_SUFFIX))
    try:
        os.symlink(target, tmp)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def is_generated(path:str) -> bool:
    try:
        with open(path, 'r', encoding='utf8', errors='replace') as f:
            return f.readline().rstrip('\n') == MARKER
    except OSError:
        return False


def read(path:str) -> Optional[bytes]:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError:
        return None


def existing_files(target_dir:str) -> dict[str, Optional[str]]:
    '''our files already in place -> content digest; leftover temporary files -> None'''
    found:dict[str, Optional[str]] = {}
    for name in sorted(os.listdir(target_dir)):
        path = os.path.join(target_dir, name)
        if name.startswith('.' + PREFIX) and name.endswith(TMP_SUFFIX):
            found[path] = None
            continue
        if not name.startswith(PREFIX) or not name.endswith(SUFFIXES):
            continue
        if os.path.islink(path) or not os.path.isfile(path):
            continue
        if is_generated(path):
            data = read(path)
            if data is not None:
                found[path] = digest(data)
    return found


def existing_links(wants_dir:str, target_dir:str) -> dict[str, Optional[str]]:
    '''symlinks into target_dir -> where they point'''
    found:dict[str, Optional[str]] = {}
    try:
        names = sorted(os.listdir(wants_dir))
    except FileNotFoundError:
        return found
    for name in names:
        path = os.path.join(wants_dir, name)
        if name.startswith('.' + PREFIX) and name.endswith(TMP_SUFFIX):
            found[path] = None
            continue
        if not name.startswith(PREFIX) or not os.path.islink(path):
            continue
        link = os.readlink(path)
        if os.path.dirname(link) == target_dir:
            found[path] = link
    return found


def prepare(target_dir:str) -> str:
    '''the wants directory; raise FatalError if nothing can be written'''
    wants_dir = os.path.join(target_dir, WANTS_DIR)
    try:
        os.makedirs(wants_dir, exist_ok=True)
    except OSError as e:
        raise FatalError('cannot create %s: %s' % (wants_dir, e.strerror))
    if not os.access(target_dir, os.W_OK | os.X_OK):
        raise FatalError('%s is not writable' % target_dir)
    return wants_dir


def synchronize(units:Iterable[GeneratedUnit], target_dir:str, report:Report,
                notify:Optional[Callable[[], None]]=None) -> SyncResult:
    target_dir = os.path.abspath(target_dir)
    wants_dir = prepare(target_dir)
    result = SyncResult()

    try:
        old_files = existing_files(target_dir)
        old_links = existing_links(wants_dir, target_dir)
    except OSError as e:
        raise FatalError('cannot list %s: %s' % (target_dir, e.strerror))

    new_files:dict[str, str] = {}
    new_links:dict[str, str] = {}
    for unit in units:
        new_files.update(unit.files())
        new_links.update(unit.links())

    for path, content in new_files.items():
        data = bytes(content, 'utf8')
        if old_files.get(path) == digest(data):
            result.unchanged.append(path)
            continue
        if path not in old_files and os.path.lexists(path):
            result.failed.append(path)
            report.add(WriteError('refusing to replace a file not generated here', path))
            continue
        try:
            atomic_write(path, content)
            result.written.append(path)
        except OSError as e:
            result.failed.append(path)
            report.add(WriteError('cannot write: %s' % e.strerror, path))

    for path, target in new_links.items():
        if old_links.get(path) == target:
            result.unchanged.append(path)
            continue
        if path not in old_links and os.path.lexists(path):
            result.failed.append(path)
            report.add(WriteError('refusing to replace a file not generated here', path))
            continue
        try:
            atomic_symlink(target, path)
            result.written.append(path)
        except OSError as e:
            result.failed.append(path)
            report.add(WriteError('cannot link: %s' % e.strerror, path))

    stale = [p for p in old_files if p not in new_files] + \
            [p for p in old_links if p not in new_links]
    for path in stale:
        try:
            os.unlink(path)
            result.removed.append(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            result.failed.append(path)
            report.add(WriteError('cannot remove: %s' % e.strerror, path))

    log.debug('%s: %r', target_dir, result)
    if notify and result.changed:
        notify()
    return result
