'''
Schedules to systemd [Timer] triggers.

Calendar fields are rendered in OnCalendar= grammar
("[DOW] *-MONTH-DAY HOUR:MINUTE:00"), compacted to a range or a
repetition when the values allow it. When both day fields are
restricted cron fires on either of them; one calendar expression can
only AND them, so two OnCalendar= lines are emitted on the same timer.

Anything that can only be approximated is reported in the rendering's
warnings, the job itself is always kept.
'''
from typing import NamedTuple, Optional

from .config import Features
from .schedule import (DAY_OF_MONTH, DAY_OF_WEEK, HOUR, MINUTE, MONTH,
                       Calendar, Field, Interval, ScheduleSpec, Special,
                       SpecialTag, Values)

DOW_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

DAY = 24 * 60 * 60


class Policy(NamedTuple):
    persistent:bool = False
    random_delay:int = 0 # seconds
    delay:int = 0 # minutes
    start_hour:int = 0
    boot_relative:bool = False


class TimerRendering(NamedTuple):
    calendars:tuple[str, ...] = ()
    on_boot_sec:Optional[int] = None
    on_unit_active_sec:Optional[int] = None
    persistent:bool = False
    random_delay:int = 0
    warnings:tuple[str, ...] = ()

    def lines(self) -> list[str]:
        lines = ['[Timer]']
        for calendar in self.calendars:
            lines.append('OnCalendar=%s' % calendar)
        if self.on_boot_sec is not None:
            lines.append('OnBootSec=%ds' % self.on_boot_sec)
        if self.on_unit_active_sec is not None:
            lines.append('OnUnitActiveSec=%ds' % self.on_unit_active_sec)
        if self.random_delay > 0:
            lines.append('RandomizedDelaySec=%ds' % self.random_delay)
        if self.persistent:
            lines.append('Persistent=true')
        return lines


def linearize(values:Values, field:Field) -> str:
    '''"*", a single value, a..b, start/step or a plain list'''
    full = set(range(field.low, field.high + 1))
    if field is DAY_OF_WEEK:
        full = set(range(0, 7))
    if values is None or set(values) == full:
        return '*'

    fmt = DOW_NAMES.__getitem__ if field is DAY_OF_WEEK else str
    if len(values) == 1:
        return fmt(values[0])

    step = values[1] - values[0]
    uniform = all(b - a == step for a, b in zip(values, values[1:]))
    if uniform and len(values) >= 3:
        # systemd weeks start on Monday, Sun..Tue is a reversed range
        if step == 1 and (field is not DAY_OF_WEEK or values[0] >= 1):
            return '%s..%s' % (fmt(values[0]), fmt(values[-1]))
        if field is not DAY_OF_WEEK and values[-1] + step > field.high:
            return '%d/%d' % (values[0], step)
    return ','.join(map(fmt, values))


def calendar_expressions(cal:Calendar) -> tuple[str, ...]:
    time = '%s:%s:00' % (linearize(cal.hour, HOUR), linearize(cal.minute, MINUTE))
    month = linearize(cal.month, MONTH)
    days = linearize(cal.day_of_month, DAY_OF_MONTH)
    dows = linearize(cal.day_of_week, DAY_OF_WEEK)

    if cal.or_days:
        if days == '*' or dows == '*':
            # either side already matches every day
            return ('*-%s-* %s' % (month, time),)
        return ('*-%s-%s %s' % (month, days, time),
                '%s *-%s-* %s' % (dows, month, time))

    if dows == '*':
        return ('*-%s-%s %s' % (month, days, time),)
    return ('%s *-%s-%s %s' % (dows, month, days, time),)


def offset(policy:Policy, warnings:list[str]) -> tuple[int, int]:
    '''(hour, minute) of a periodic job, from START_HOURS_RANGE and DELAY'''
    total = policy.start_hour * 60 + policy.delay
    if total >= DAY // 60:
        warnings.append('delay of %d minutes past %d:00 does not fit in a day, using 23:59'
                        % (policy.delay, policy.start_hour))
        total = DAY // 60 - 1
    return divmod(total, 60)


SHORTHANDS = {
    SpecialTag.DAILY: ('daily', '*-*-* %d:%d:00'),
    SpecialTag.WEEKLY: ('weekly', 'Mon *-*-* %d:%d:00'),
    SpecialTag.MONTHLY: ('monthly', '*-*-1 %d:%d:00'),
    SpecialTag.QUARTERLY: ('quarterly', '*-1,4,7,10-1 %d:%d:00'),
    SpecialTag.SEMI_ANNUALLY: ('semiannually', '*-1,7-1 %d:%d:00'),
    SpecialTag.YEARLY: ('yearly', '*-1-1 %d:%d:00'),
}


def special_trigger(tag:SpecialTag, policy:Policy, warnings:list[str]) -> dict:
    if tag is SpecialTag.REBOOT:
        return dict(on_boot_sec=policy.delay * 60, persistent=False)

    if tag is SpecialTag.MINUTELY:
        return dict(calendars=('minutely',), persistent=False)

    if tag is SpecialTag.HOURLY:
        if policy.delay == 0:
            return dict(calendars=('hourly',))
        if policy.delay >= 60:
            warnings.append('delay of %d minutes is longer than an hour, using %d'
                            % (policy.delay, policy.delay % 60))
        return dict(calendars=('*-*-* *:%d:00' % (policy.delay % 60),))

    shorthand, expression = SHORTHANDS[tag]
    if policy.delay == 0 and policy.start_hour == 0:
        return dict(calendars=(shorthand,))
    return dict(calendars=(expression % offset(policy, warnings),))


def interval_calendar(interval:Interval, policy:Policy, warnings:list[str]) -> str:
    '''wall-clock stand-in for an anacron period, so that Persistent= applies'''
    hour, minute = offset(policy._replace(delay=interval.delay_minutes), warnings)
    days = interval.period_days
    if days <= 31:
        if days > 1:
            warnings.append('every %d days is approximated by days 1/%d of each month' % (days, days))
        return '*-*-1/%d %d:%d:00' % (days, hour, minute)

    months = min(12, max(1, int(round(days / 30))))
    if days % 30 or 12 % months:
        warnings.append('every %d days is approximated by every %d months' % (days, months))
    return '*-1/%d-1 %d:%d:00' % (months, hour, minute)


def translate(spec:ScheduleSpec, policy:Policy, features:Optional[Features]=None) -> TimerRendering:
    if features is None:
        features = Features()
    warnings:list[str] = []
    trigger:dict

    if isinstance(spec, Calendar):
        trigger = dict(calendars=calendar_expressions(spec))
    elif isinstance(spec, Special):
        trigger = special_trigger(spec.tag, policy, warnings)
    elif isinstance(spec, Interval):
        if policy.boot_relative and features.boot:
            trigger = dict(on_boot_sec=spec.delay_minutes * 60,
                           on_unit_active_sec=spec.period_days * DAY,
                           persistent=False)
        else:
            if policy.boot_relative:
                warnings.append('boot-relative timers are disabled, using a calendar')
            trigger = dict(calendars=(interval_calendar(spec, policy, warnings),))
    else:
        raise TypeError('unknown schedule %r' % (spec,))

    trigger.setdefault('persistent', policy.persistent)
    if not features.persistent:
        trigger['persistent'] = False
    if features.randomized_delay:
        trigger['random_delay'] = policy.random_delay
    return TimerRendering(warnings=tuple(warnings), **trigger)
