#!/usr/bin/python3
import logging
import os
import tempfile
import unittest

from systemd_crontab_generator.discovery import Origin, SourceKind
from systemd_crontab_generator.errors import Notice, ParseError, Report, TranslateWarning
from systemd_crontab_generator.log import KmsgHandler, Log


class TestKmsg(unittest.TestCase):

    def test_priorities(self):
        self.assertEqual(Log.from_level(logging.ERROR), Log.ERR)
        self.assertEqual(Log.from_level(logging.WARNING), Log.WARNING)
        self.assertEqual(Log.from_level(logging.INFO), Log.NOTICE)
        self.assertEqual(Log.from_level(logging.DEBUG), Log.DEBUG)

    def test_record(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'kmsg')
            logger = logging.getLogger('test_log.kmsg')
            logger.propagate = False
            handler = KmsgHandler(path)
            logger.addHandler(handler)
            try:
                logger.warning('garbled time in %s', '/etc/crontab')
            finally:
                logger.removeHandler(handler)
            with open(path) as f:
                self.assertEqual(f.read(), '<4>systemd-crontab-generator[%d]: garbled time in /etc/crontab\n'
                                 % os.getpid())


class TestReport(unittest.TestCase):

    def test_batch(self):
        origin = Origin(SourceKind.CROND, '/etc/cron.d/foo', 3)
        report = Report()
        report.add(ParseError('garbled time', origin, '61 * * * * root true'))
        report.add(TranslateWarning('approximated', origin))
        report.add(Notice('ignoring', Origin(SourceKind.CROND, '/etc/cron.d/bar')))
        self.assertEqual(len(report.errors), 1)

        with self.assertLogs('systemd_crontab_generator.errors', level='INFO') as cm:
            report.flush()
        self.assertEqual(cm.output, [
            'ERROR:systemd_crontab_generator.errors:garbled time in /etc/cron.d/foo:3: 61 * * * * root true',
            'WARNING:systemd_crontab_generator.errors:approximated in /etc/cron.d/foo:3',
            'INFO:systemd_crontab_generator.errors:ignoring in /etc/cron.d/bar',
        ])
        self.assertEqual(report.problems, [])


if __name__ == '__main__':
    unittest.main()
