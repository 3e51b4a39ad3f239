'''
systemd-crontab-generator: translate crontabs into .timer/.service pairs

Called by systemd as a generator with three output directories, or by
hand with just one. Generated units go to the first one.
'''
import logging
import os
import sys
from typing import Callable, Optional

from .config import Features, Paths
from .discovery import discover
from .errors import FatalError, GeneratorError, Report, TranslateWarning
from .identity import IdentityResolver
from .log import setup_logging
from .naming import assign_names
from .parser import Job, parse
from .translate import translate
from .units import GeneratedUnit, render
from .writer import SyncResult, synchronize

log = logging.getLogger(__name__)


def build_jobs(paths:Paths, features:Features, resolver:IdentityResolver,
               report:Report) -> list[Job]:
    jobs = []
    for raw in discover(paths, features, report):
        try:
            job = parse(raw, features)
            job.bind(resolver.resolve(job.user, raw.origin))
        except GeneratorError as e:
            report.add(e)
            continue

        job.timer = translate(job.schedule, job.policy, features)
        for warning in job.warnings:
            report.add(warning)
        for message in job.timer.warnings:
            report.add(TranslateWarning(message, raw.origin, raw.line))
        jobs.append(job)

    assign_names(jobs)
    return jobs


def generate(target_dir:str,
             paths:Optional[Paths]=None,
             features:Optional[Features]=None,
             resolver:Optional[IdentityResolver]=None,
             report:Optional[Report]=None,
             notify:Optional[Callable[[], None]]=None) -> SyncResult:
    '''one full pass; per-entry problems end up in report'''
    paths = paths or Paths()
    features = features or Features.detect()
    resolver = resolver or IdentityResolver()
    report = report if report is not None else Report()
    target_dir = os.path.abspath(target_dir)

    jobs = build_jobs(paths, features, resolver, report)
    units:list[GeneratedUnit] = [render(job, target_dir, features) for job in jobs]
    log.debug('%d units for %s', len(units), target_dir)
    return synchronize(units, target_dir, report, notify)


def main(argv:Optional[list[str]]=None) -> int:
    if argv is None:
        argv = sys.argv
    if len(argv) not in (2, 4) or (os.path.exists(argv[1])
                                   and not os.path.isdir(argv[1])):
        sys.exit("Usage: %s <destination_folder>" % os.path.basename(argv[0]))

    run_by_systemd = len(argv) == 4
    setup_logging(run_by_systemd, os.environ.get('SYSTEMD_LOG_LEVEL') == 'debug')

    report = Report()
    try:
        generate(argv[1], report=report)
    except FatalError as e:
        report.flush()
        log.critical('%s', e)
        return 1
    except Exception as e:
        if not run_by_systemd:
            raise
        log.critical('global exception: %s', e)
        return 1
    report.flush()
    return 0


if __name__ == '__main__':
    sys.exit(main())
