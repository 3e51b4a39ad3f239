'''
Schedule model shared by every crontab dialect.

A schedule is one of three shapes:

 * Calendar: the five classic fields, each either None ("*") or the
   sorted tuple of accepted values once lists, ranges and steps are
   expanded;
 * Special: an @keyword such as @daily or @reboot;
 * Interval: an anacron period of n days, with a start delay.

Field values are validated against their domain: out of range
values make the whole entry invalid, they are never clamped.
'''
from enum import Enum
from typing import NamedTuple, Optional, Union

MONTHS = ['jan', 'feb', 'mar', 'apr', 'may', 'jun',
          'jul', 'aug', 'sep', 'oct', 'nov', 'dec']
DOWS = ['sun', 'mon', 'tue', 'wed', 'thu', 'fri', 'sat']


class Field(NamedTuple):
    name:str
    low:int
    high:int
    names:Optional[list[str]] = None
    # first value of the names list
    base:int = 0

    def value(self, token:str) -> int:
        if self.names and token[:1].isalpha():
            try:
                return self.names.index(token[0:3].lower()) + self.base
            except ValueError:
                raise ValueError('unknown %s name %r' % (self.name, token))
        try:
            return int(token)
        except ValueError:
            raise ValueError('garbled %s %r' % (self.name, token))


MINUTE = Field('minute', 0, 59)
HOUR = Field('hour', 0, 23)
DAY_OF_MONTH = Field('day of month', 1, 31)
MONTH = Field('month', 1, 12, MONTHS, 1)
# 7 is another sunday
DAY_OF_WEEK = Field('day of week', 0, 7, DOWS, 0)

FIELDS = [MINUTE, HOUR, DAY_OF_MONTH, MONTH, DAY_OF_WEEK]

Values = Optional[tuple[int, ...]]


def parse_item(item:str, field:Field) -> range:
    '''one element of a comma list: n, a-b, */s, a-b/s or a/s'''
    stepped = '/' in item
    if stepped:
        span, step_text = item.split('/', 1)
        try:
            step = int(step_text)
        except ValueError:
            raise ValueError('garbled step %r' % item)
        if step < 1:
            raise ValueError('step must be positive in %r' % item)
    else:
        span, step = item, 1

    if span == '*':
        # */n never yields the sunday alias
        start, end = field.low, min(field.high, 6) if field is DAY_OF_WEEK else field.high
    elif '-' in span:
        first, last = span.split('-', 1)
        start, end = field.value(first), field.value(last)
        if field is DAY_OF_WEEK and end == 0 and start > 0:
            # mon-sun
            end = 7
    else:
        start = field.value(span)
        end = field.high if stepped else start

    for value in (start, end):
        if not field.low <= value <= field.high:
            raise ValueError('%s %d out of range %d-%d' % (field.name, value, field.low, field.high))
    if start > end:
        raise ValueError('reversed %s range %r' % (field.name, item))

    return range(start, end + 1, step)


def parse_field(value:str, field:Field) -> Values:
    '''None for "*", otherwise the sorted accepted values'''
    if value == '*':
        return None

    values:set[int] = set()
    for item in value.split(','):
        if not item:
            raise ValueError('empty element in %s %r' % (field.name, value))
        values.update(parse_item(item, field))

    if field is DAY_OF_WEEK:
        values = {v % 7 for v in values}
    return tuple(sorted(values))


class Calendar(NamedTuple):
    minute:Values
    hour:Values
    day_of_month:Values
    month:Values
    day_of_week:Values
    # a day field was written as */n: cron then ANDs both day fields
    days_star:bool = False

    @property
    def or_days(self) -> bool:
        '''both day fields restricted: a day matches either of them'''
        return (self.day_of_month is not None and
                self.day_of_week is not None and
                not self.days_star)

    @property
    def kind(self) -> str:
        return 'calendar'

    def canonical(self) -> str:
        def fmt(values:Values) -> str:
            return '*' if values is None else ','.join(map(str, values))
        return 'calendar %s %s %s %s %s%s' % (
            fmt(self.minute), fmt(self.hour), fmt(self.day_of_month),
            fmt(self.month), fmt(self.day_of_week),
            ' or' if self.or_days else '')


class SpecialTag(Enum):
    REBOOT = 'reboot'
    MINUTELY = 'minutely'
    HOURLY = 'hourly'
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    SEMI_ANNUALLY = 'semi-annually'
    YEARLY = 'yearly'

    @property
    def feature(self) -> str:
        '''name of the Features switch that enables this tag'''
        if self is SpecialTag.REBOOT:
            return 'boot'
        return self.value.replace('-', '_')


ALIASES = {
    'boot': 'reboot',
    'midnight': 'daily',
    'biannually': 'semi-annually',
    'bi-annually': 'semi-annually',
    'semiannually': 'semi-annually',
    'anually': 'yearly',
    'annually': 'yearly',
}

# anacron periods that are really a calendar unit
PERIOD_DAYS = {
    '1': 'daily',
    '7': 'weekly',
    '30': 'monthly',
    '31': 'monthly',
    '365': 'yearly',
}


class Special(NamedTuple):
    tag:SpecialTag

    @property
    def kind(self) -> str:
        return self.tag.value

    def canonical(self) -> str:
        return '@' + self.tag.value


class Interval(NamedTuple):
    period_days:int
    delay_minutes:int = 0

    @property
    def kind(self) -> str:
        return 'interval'

    def canonical(self) -> str:
        return 'interval %dd %dm' % (self.period_days, self.delay_minutes)


ScheduleSpec = Union[Calendar, Special, Interval]


def parse_timespec(text:str) -> Calendar:
    '''"m h dom mon dow"'''
    parts = text.split()
    if len(parts) != 5:
        raise ValueError('expected 5 time fields, got %d' % len(parts))

    minutes, hours, days, months, dows = [parse_field(value, field)
                                          for value, field in zip(parts, FIELDS)]
    days_star = any(part.startswith('*/') for part in (parts[2], parts[4]))
    return Calendar(minutes, hours, days, months, dows, days_star)


def parse_special(token:str) -> Special:
    '''"@daily", "@reboot", ... '''
    name = token.lower().lstrip('@')
    name = ALIASES.get(name, name)
    try:
        return Special(SpecialTag(name))
    except ValueError:
        raise ValueError('unknown schedule %r' % token)


def parse_period(period:str, delay:str) -> ScheduleSpec:
    '''anacrontab "period delay" pair'''
    try:
        delay_minutes = int(delay)
    except ValueError:
        raise ValueError('invalid delay %r' % delay)
    if delay_minutes < 0:
        raise ValueError('invalid delay %r' % delay)

    name = period.lower().lstrip('@')
    if name in PERIOD_DAYS:
        return Special(SpecialTag(PERIOD_DAYS[name]))
    if not name.isdigit():
        return parse_special(period)

    days = int(name)
    if days < 1:
        raise ValueError('invalid period %r' % period)
    return Interval(days, delay_minutes)
