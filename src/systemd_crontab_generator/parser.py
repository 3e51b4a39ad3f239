import os
import string
from typing import Optional

from .config import PERIODS, Features, which
from .discovery import RawEntry, SourceKind
from .errors import DisabledError, EnvironmentWarning, GeneratorError, Notice, ParseError
from .identity import Identity
from .schedule import (Interval, ScheduleSpec, Special, SpecialTag,
                       parse_period, parse_special, parse_timespec)
from .translate import Policy, TimerRendering

KSH_SHELLS = ['/bin/sh', '/bin/dash', '/bin/ksh', '/bin/bash', '/usr/bin/zsh']
VALID_CHARS = "-_" + string.ascii_letters + string.digits

def systemd_bool(string:str) -> bool:
    return string.lower() in ['yes', 'true', '1']


class Job:
    '''Job definition'''
    raw:RawEntry
    jobid:str
    user:Optional[str]
    environment:dict[str, str]
    shell:str
    command:list[str]
    schedule:ScheduleSpec
    persistent:bool
    random_delay:int # seconds
    delay:int # minutes
    start_hour:int
    batch:bool
    testremoved:Optional[str]
    identity:Optional[Identity]
    timer:Optional[TimerRendering]
    unit_name:str
    warnings:list[GeneratorError]

    def __init__(self, raw:RawEntry) -> None:
        self.raw = raw
        self.jobid = ''
        self.user = raw.user
        self.environment = dict(raw.environment)
        self.shell = '/bin/sh'
        self.command = raw.command.split(' ') if raw.command else []
        self.persistent = False
        self.random_delay = 0
        self.delay = 0
        self.start_hour = 0
        self.batch = False
        self.testremoved = None
        self.identity = None
        self.timer = None
        self.unit_name = ''
        self.warnings = []

    @property
    def origin(self):
        return self.raw.origin

    @property
    def line(self) -> str:
        return self.raw.line

    @property
    def home(self) -> Optional[str]:
        return self.identity.home if self.identity else None

    @property
    def boot_relative(self) -> bool:
        if isinstance(self.schedule, Special):
            return self.schedule.tag is SpecialTag.REBOOT
        return isinstance(self.schedule, Interval) and not self.persistent

    @property
    def policy(self) -> Policy:
        return Policy(self.persistent, self.random_delay, self.delay,
                      self.start_hour, self.boot_relative)

    def warn(self, message:str) -> None:
        self.warnings.append(EnvironmentWarning(message, self.origin, self.line))

    def which(self, pgm:str) -> Optional[str]:
        return which(pgm, self.environment.get('PATH'))

    def decode_environment(self, default_persistent:bool, features:Features) -> None:
        '''decode some environment variables that influence
           the behaviour of the generator itself'''

        if 'SHELL' in self.environment:
            self.shell = self.environment['SHELL']

        persistent = self.environment.pop('PERSISTENT', 'auto')
        if persistent in ('auto', ''):
            self.persistent = default_persistent
        else:
            self.persistent = systemd_bool(persistent)
        if self.persistent and not features.persistent:
            self.persistent = False

        if self.environment.get('MAILTO') and not features.sendmail:
            self.warn('a MTA is not installed, but MAILTO is set')

        if 'RANDOM_DELAY' in self.environment:
            value = self.environment.pop('RANDOM_DELAY')
            try:
                minutes = int(value)
                if minutes < 0:
                    raise ValueError(value)
                if features.randomized_delay:
                    self.random_delay = minutes * 60
                elif minutes:
                    self.warn('RANDOM_DELAY is not supported')
            except ValueError:
                self.warn('invalid RANDOM_DELAY')

        if 'START_HOURS_RANGE' in self.environment:
            value = self.environment.pop('START_HOURS_RANGE')
            try:
                self.start_hour = int(value.split('-')[0])
                if not 0 <= self.start_hour <= 23:
                    raise ValueError(value)
            except ValueError:
                self.start_hour = 0
                self.warn('invalid START_HOURS_RANGE')

        if 'DELAY' in self.environment:
            value = self.environment.pop('DELAY')
            try:
                self.delay = int(value)
                if self.delay < 0:
                    raise ValueError(value)
            except ValueError:
                self.delay = 0
                self.warn('invalid DELAY')

        if 'BATCH' in self.environment:
            self.batch = systemd_bool(self.environment.pop('BATCH'))

    def decode_command(self) -> None:
        '''strip the usual shell boilerplate around the real command'''
        if self.shell not in KSH_SHELLS:
            return

        command = self.command
        if (len(command) >= 3 and
            command[-2] == '>' and
            command[-1] == '/dev/null'):
            command = command[0:-2]

        if (len(command) >= 2 and
            command[-1] == '>/dev/null'):
            command = command[0:-1]

        if (len(command) == 6 and
            command[0] == '[' and
            command[1] in ['-x','-f','-e'] and
            command[2] == command[5] and
            command[3] == ']' and
            command[4] == '&&' ):
                self.testremoved = command[2]
                command = command[5:]

        if (len(command) == 5 and
            command[0] == 'test' and
            command[1] in ['-x','-f','-e'] and
            command[2] == command[4] and
            command[3] == '&&' ):
                self.testremoved = command[2]
                command = command[4:]

        self.command = command

    def is_active(self) -> Optional[str]:
        '''reason to skip the job, if any'''
        if self.testremoved and not os.path.isfile(self.testremoved):
            return '%s is removed' % self.testremoved

        command = self.command
        if (len(command) >= 6 and
            command[0] == '[' and
            command[1] in ['-d','-e'] and
            command[2].startswith('/run/systemd') and
            command[3] == ']' and
            command[4] == '||'):
            return 'it only runs without systemd'

        if (len(command) >= 5 and
            command[0] == 'test' and
            command[1] in ['-d','-e'] and
            command[2].startswith('/run/systemd') and
            command[3] == '||'):
            return 'it only runs without systemd'

        return None

    def bind(self, identity:Identity) -> None:
        '''attach the resolved user, and perform smart substitutions
           that need its home directory'''
        self.identity = identity
        home = identity.home

        if home:
            if self.command[0].startswith('~/'):
                self.command[0] = home + self.command[0][1:]

            if 'PATH' in self.environment:
                parts = self.environment['PATH'].split(':')
                for i, part in enumerate(parts):
                    if part.startswith('~/'):
                        parts[i] = home + part[1:]
                self.environment['PATH'] = ':'.join(parts)

        if self.shell in KSH_SHELLS and '/' not in self.command[0]:
            pgm = self.which(self.command[0])
            if pgm:
                self.command[0] = pgm


def parse_schedule(raw:RawEntry) -> tuple[ScheduleSpec, bool]:
    '''the schedule and whether it persists by default'''
    kind = raw.origin.kind
    if kind is SourceKind.PERIODIC:
        # implied by the directory
        return Special(SpecialTag(raw.schedule)), True
    if kind is SourceKind.ANACRONTAB:
        period, delay = raw.schedule.split(' ')
        return parse_period(period, delay), True
    if raw.schedule.startswith('@'):
        return parse_special(raw.schedule), True
    return parse_timespec(raw.schedule), False


def make_jobid(raw:RawEntry) -> str:
    kind = raw.origin.kind
    if kind is SourceKind.ANACRONTAB:
        jobid = 'anacron-' + (raw.jobid or '')
    elif kind is SourceKind.PERIODIC:
        jobid = raw.jobid or raw.origin.basename
    else:
        jobid = raw.origin.basename + '-' + (raw.user or 'root')
    return ''.join(c for c in jobid if c in VALID_CHARS)[:64]


def parse(raw:RawEntry, features:Features) -> Job:
    '''RawEntry -> Job, raises a GeneratorError when the entry must be dropped'''
    try:
        schedule, default_persistent = parse_schedule(raw)
    except ValueError as e:
        raise ParseError(str(e), raw.origin, raw.line)

    if isinstance(schedule, Special) and not getattr(features, schedule.tag.feature):
        raise DisabledError('@%s schedules are disabled' % schedule.tag.value, raw.origin, raw.line)

    job = Job(raw)
    job.schedule = schedule
    job.jobid = make_jobid(raw)
    if not job.command or not job.command[0]:
        raise ParseError('missing command', raw.origin, raw.line)

    job.decode_environment(default_persistent, features)
    if raw.origin.kind is SourceKind.PERIODIC:
        job.delay = (PERIODS.index(raw.schedule) + 1) * 5
        job.command = [raw.command]
    elif raw.origin.kind is SourceKind.ANACRONTAB and isinstance(schedule, Special):
        job.delay = int(raw.schedule.split(' ')[1])

    if isinstance(schedule, Special) and schedule.tag in (SpecialTag.REBOOT, SpecialTag.MINUTELY):
        job.persistent = False

    job.decode_command()
    reason = job.is_active()
    if reason:
        raise Notice('skipping job because %s' % reason, raw.origin, raw.line)

    return job
