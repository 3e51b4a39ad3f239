#!/usr/bin/python3
import os
import pwd
import tempfile
import unittest
from unittest import mock

from systemd_crontab_generator.config import Features, Paths
from systemd_crontab_generator.errors import ParseError, Report, ResolveError, TranslateWarning
from systemd_crontab_generator.generator import generate, main
from systemd_crontab_generator.identity import IdentityResolver
from systemd_crontab_generator.units import WANTS_DIR

PASSWD = {
    'root': pwd.struct_passwd(('root', 'x', 0, 0, 'root', '/root', '/bin/bash')),
    'alice': pwd.struct_passwd(('alice', 'x', 1000, 1000, 'Alice', '/home/alice', '/bin/sh')),
}

CRONTAB = '''\
SHELL=/bin/sh
0 5 1,15 * 1 root /usr/bin/backup --full
@reboot root /usr/bin/warmup
*/15 * * * * nobody-here /usr/bin/poll
61 * * * * root /usr/bin/never
'''


class TestGenerate(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = os.path.join(self.tmp.name, 'root')
        self.target = os.path.join(self.tmp.name, 'generator')
        self.paths = Paths(root=self.root, unit_dirs=[])
        self.features = Features(sendmail=False)
        self.write('etc/crontab', CRONTAB)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, path, content):
        path = os.path.join(self.root, path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            f.write(content)

    def run_generator(self, report=None):
        return generate(self.target, self.paths, self.features,
                        IdentityResolver(PASSWD.__getitem__),
                        report if report is not None else Report())

    def units(self, suffix):
        return sorted(n for n in os.listdir(self.target) if n.endswith(suffix))

    def read(self, name):
        with open(os.path.join(self.target, name)) as f:
            return f.read()

    def snapshot(self):
        found = {}
        for dirpath, _, filenames in os.walk(self.target):
            for name in filenames:
                path = os.path.join(dirpath, name)
                with open(path, 'rb') as f:
                    found[path] = f.read()
        return found

    def test_units(self):
        report = Report()
        self.run_generator(report)

        timers = self.units('.timer')
        self.assertEqual(len(timers), 2)
        self.assertEqual(sorted(os.listdir(os.path.join(self.target, WANTS_DIR))), timers)

        backup = [t for t in timers if '-calendar-' in t][0]
        text = self.read(backup)
        self.assertIn('OnCalendar=*-*-1,15 5:0:00\n', text)
        self.assertIn('OnCalendar=Mon *-*-* 5:0:00\n', text)
        self.assertNotIn('Persistent=true', text)

        reboot = [t for t in timers if '-reboot-' in t][0]
        text = self.read(reboot)
        self.assertIn('OnBootSec=0s\n', text)
        self.assertNotIn('OnCalendar', text)

        service = self.read(backup.replace('.timer', '.service'))
        self.assertIn('User=root\n', service)
        self.assertIn('WorkingDirectory=/root\n', service)
        self.assertIn('Environment=SHELL=/bin/sh\n', service)
        scriptlet = os.path.join(self.target, backup.replace('.timer', '.sh'))
        self.assertIn('ExecStart=/bin/sh %s\n' % scriptlet, service)
        with open(scriptlet) as f:
            self.assertTrue(f.read().endswith('\n/usr/bin/backup --full\n'))

        self.assertEqual(len(report.of(ResolveError)), 1)
        self.assertIn('nobody-here', str(report.of(ResolveError)[0]))
        self.assertEqual(len(report.of(ParseError)), 1)
        self.assertFalse(any('poll' in self.read(n) for n in self.units('.sh')))

    def test_idempotent(self):
        self.run_generator()
        before = self.snapshot()
        result = self.run_generator()
        self.assertEqual(result.written, [])
        self.assertEqual(result.removed, [])
        self.assertEqual(self.snapshot(), before)

    def test_stale_pruning(self):
        self.run_generator()
        before = self.snapshot()
        self.write('etc/crontab', CRONTAB.replace('@reboot root /usr/bin/warmup\n', ''))

        result = self.run_generator()
        self.assertEqual(result.written, [])
        self.assertEqual(len(result.removed), 4)
        self.assertTrue(all('-reboot-' in p for p in result.removed))
        after = self.snapshot()
        self.assertEqual(after, {p: c for p, c in before.items() if '-reboot-' not in p})

    def test_user_crontab_and_anacron(self):
        self.write('var/spool/cron/crontabs/alice', 'MAILTO=""\n@hourly ~/bin/sync\n')
        self.write('etc/anacrontab', '3 10 backup /usr/bin/backup\n')
        report = Report()
        self.run_generator(report)

        alice = [n for n in self.units('.service') if n.startswith('cron-alice-alice-hourly-')]
        self.assertEqual(len(alice), 1)
        service = self.read(alice[0])
        self.assertIn('User=alice\n', service)
        self.assertIn('Requires=systemd-user-sessions.service\n', service)
        self.assertIn('RequiresMountsFor=/home/alice\n', service)

        anacron = [n for n in self.units('.timer') if n.startswith('cron-anacron-backup-interval-')]
        self.assertEqual(len(anacron), 1)
        timer = self.read(anacron[0])
        self.assertIn('OnCalendar=*-*-1/3 0:10:00\n', timer)
        self.assertIn('Persistent=true\n', timer)
        self.assertEqual(len(report.of(TranslateWarning)), 1)
        self.assertNotIn('User=', self.read(anacron[0].replace('.timer', '.service')))


class TestMain(unittest.TestCase):

    def test_usage(self):
        with self.assertRaises(SystemExit):
            main(['systemd-crontab-generator'])
        with tempfile.NamedTemporaryFile() as f:
            with self.assertRaises(SystemExit):
                main(['systemd-crontab-generator', f.name])

    def test_debug_logging(self):
        with tempfile.TemporaryDirectory() as target, \
             mock.patch.dict(os.environ, {'SYSTEMD_LOG_LEVEL': 'debug'}), \
             mock.patch('systemd_crontab_generator.generator.setup_logging') as setup, \
             mock.patch('systemd_crontab_generator.generator.generate') as run:
            self.assertEqual(main(['systemd-crontab-generator', target]), 0)
        setup.assert_called_once_with(False, True)
        self.assertEqual(run.call_args[0][0], target)

    def test_default_logging(self):
        env = {k: v for k, v in os.environ.items() if k != 'SYSTEMD_LOG_LEVEL'}
        with tempfile.TemporaryDirectory() as target, \
             mock.patch.dict(os.environ, env, clear=True), \
             mock.patch('systemd_crontab_generator.generator.setup_logging') as setup, \
             mock.patch('systemd_crontab_generator.generator.generate'):
            self.assertEqual(main(['systemd-crontab-generator', target]), 0)
        setup.assert_called_once_with(False, False)


if __name__ == '__main__':
    unittest.main()
