import logging
from typing import Optional

log = logging.getLogger(__name__)


class GeneratorError(Exception):
    '''a problem tied to one location or one crontab line'''
    level = logging.ERROR

    def __init__(self, message:str, origin=None, line:Optional[str]=None) -> None:
        super().__init__(message)
        self.message = message
        self.origin = origin
        self.line = line

    def __str__(self) -> str:
        text = self.message
        if self.origin is not None:
            text = '%s in %s' % (text, self.origin)
        if self.line:
            text = '%s: %s' % (text, self.line)
        return text


class DiscoveryError(GeneratorError):
    '''location present but unreadable, it is skipped'''


class ParseError(GeneratorError):
    '''malformed entry, it is dropped'''


class DisabledError(ParseError):
    '''the schedule needs a feature this build does not have'''
    level = logging.WARNING


class ResolveError(GeneratorError):
    '''unknown run-as user, the entry is dropped'''


class WriteError(GeneratorError):
    '''a unit file could not be written or removed'''


class TranslateWarning(GeneratorError):
    '''the schedule was approximated, the entry is kept'''
    level = logging.WARNING


class EnvironmentWarning(GeneratorError):
    '''a crontab variable was ignored, the entry is kept'''
    level = logging.WARNING


class Notice(GeneratorError):
    '''an entry or file deliberately skipped'''
    level = logging.INFO


class FatalError(Exception):
    '''no output can be produced at all'''


class Report:
    '''per-entry problems, logged together once the run is over'''
    problems:list[GeneratorError]

    def __init__(self) -> None:
        self.problems = []

    def add(self, problem:GeneratorError) -> None:
        self.problems.append(problem)

    def of(self, kind:type) -> list[GeneratorError]:
        return [p for p in self.problems if isinstance(p, kind)]

    @property
    def errors(self) -> list[GeneratorError]:
        return [p for p in self.problems if p.level >= logging.ERROR]

    def flush(self) -> None:
        for problem in self.problems:
            log.log(problem.level, '%s', problem)
        self.problems = []
