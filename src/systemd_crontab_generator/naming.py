import hashlib
from typing import Iterable

PREFIX = 'cron-'


def canonical(job) -> str:
    '''the fields that identify a job across runs'''
    origin = job.origin
    return '\0'.join([origin.kind.value,
                      origin.path,
                      job.user or '',
                      job.schedule.canonical(),
                      job.raw.command])


def unit_name(job) -> str:
    '''cron-<jobid>-<schedule kind>-<digest>

    The line number is left out on purpose: adding a comment above a
    job must not rename it.'''
    assert job.jobid
    unit_id = hashlib.md5()
    unit_id.update(bytes(canonical(job), 'utf-8'))
    return '%s%s-%s-%s' % (PREFIX, job.jobid, job.schedule.kind, unit_id.hexdigest())


def assign_names(jobs:Iterable) -> None:
    '''name every job; identical jobs get -1, -2... in source order'''
    seen:dict[str, int] = {}
    for job in jobs:
        name = unit_name(job)
        count = seen.get(name, 0)
        seen[name] = count + 1
        job.unit_name = name if not count else '%s-%d' % (name, count)
