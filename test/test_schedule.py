#!/usr/bin/python3
import unittest

from systemd_crontab_generator.schedule import (
    DAY_OF_MONTH, DAY_OF_WEEK, HOUR, MINUTE, MONTH,
    Calendar, Interval, Special, SpecialTag,
    parse_field, parse_period, parse_special, parse_timespec)


class TestFields(unittest.TestCase):

    def test_star(self):
        self.assertIsNone(parse_field('*', HOUR))

    def test_step(self):
        self.assertEqual(parse_field('*/15', MINUTE), (0, 15, 30, 45))

    def test_range_step(self):
        self.assertEqual(parse_field('10-20/5', MINUTE), (10, 15, 20))

    def test_start_step(self):
        self.assertEqual(parse_field('5/20', MINUTE), (5, 25, 45))

    def test_list(self):
        self.assertEqual(parse_field('15,1', DAY_OF_MONTH), (1, 15))

    def test_names(self):
        self.assertEqual(parse_field('jan,Mar', MONTH), (1, 3))
        self.assertEqual(parse_field('mon-wed', DAY_OF_WEEK), (1, 2, 3))

    def test_sunday_is_seven(self):
        self.assertEqual(parse_field('7', DAY_OF_WEEK), (0,))
        self.assertEqual(parse_field('5-7', DAY_OF_WEEK), (0, 5, 6))
        self.assertEqual(parse_field('mon-sun', DAY_OF_WEEK), tuple(range(7)))

    def test_out_of_domain(self):
        for value, field in [('60', MINUTE), ('24', HOUR), ('0', DAY_OF_MONTH),
                             ('32', DAY_OF_MONTH), ('13', MONTH), ('0', MONTH),
                             ('8', DAY_OF_WEEK), ('50-61', MINUTE)]:
            with self.assertRaises(ValueError, msg=value):
                parse_field(value, field)

    def test_garbled(self):
        for value in ['*/0', '5-1', 'foo', '1,,2', '*/x', '']:
            with self.assertRaises(ValueError, msg=value):
                parse_field(value, MINUTE)


class TestTimespec(unittest.TestCase):

    def test_basic(self):
        cal = parse_timespec('5 6 * * *')
        self.assertEqual(cal, Calendar((5,), (6,), None, None, None))
        self.assertFalse(cal.or_days)

    def test_or_days(self):
        cal = parse_timespec('0 5 1,15 * 1')
        self.assertEqual(cal.day_of_month, (1, 15))
        self.assertEqual(cal.day_of_week, (1,))
        self.assertTrue(cal.or_days)

    def test_starred_day_field_ands(self):
        self.assertFalse(parse_timespec('0 5 */2 * 1').or_days)

    def test_field_count(self):
        with self.assertRaises(ValueError):
            parse_timespec('0 5 * *')

    def test_canonical(self):
        self.assertEqual(parse_timespec('0 5 1,15 * 1').canonical(),
                         'calendar 0 5 1,15 * 1 or')


class TestSpecial(unittest.TestCase):

    def test_tags(self):
        self.assertEqual(parse_special('@daily'), Special(SpecialTag.DAILY))
        self.assertEqual(parse_special('@REBOOT'), Special(SpecialTag.REBOOT))

    def test_aliases(self):
        self.assertEqual(parse_special('@midnight').tag, SpecialTag.DAILY)
        self.assertEqual(parse_special('@annually').tag, SpecialTag.YEARLY)
        self.assertEqual(parse_special('@boot').tag, SpecialTag.REBOOT)
        self.assertEqual(parse_special('@semiannually').tag, SpecialTag.SEMI_ANNUALLY)
        self.assertEqual(parse_special('@bi-annually').tag, SpecialTag.SEMI_ANNUALLY)

    def test_unknown(self):
        with self.assertRaises(ValueError):
            parse_special('@fortnightly')

    def test_feature(self):
        self.assertEqual(SpecialTag.REBOOT.feature, 'boot')
        self.assertEqual(SpecialTag.SEMI_ANNUALLY.feature, 'semi_annually')
        self.assertEqual(SpecialTag.HOURLY.feature, 'hourly')


class TestPeriod(unittest.TestCase):

    def test_calendar_aliases(self):
        self.assertEqual(parse_period('1', '5'), Special(SpecialTag.DAILY))
        self.assertEqual(parse_period('7', '0'), Special(SpecialTag.WEEKLY))
        self.assertEqual(parse_period('30', '0'), Special(SpecialTag.MONTHLY))
        self.assertEqual(parse_period('@monthly', '0'), Special(SpecialTag.MONTHLY))

    def test_interval(self):
        self.assertEqual(parse_period('3', '10'), Interval(3, 10))
        self.assertEqual(Interval(3, 10).canonical(), 'interval 3d 10m')

    def test_invalid(self):
        for period, delay in [('0', '5'), ('3', 'x'), ('3', '-1'), ('often', '0')]:
            with self.assertRaises(ValueError):
                parse_period(period, delay)


if __name__ == '__main__':
    unittest.main()
