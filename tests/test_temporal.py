import unittest
import os
import sys
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta

# Add the project root to the path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from dbexport.errors import ParseError
from dbexport.temporal import format_date, format_instant, parse_instant, parse_period


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestParseInstant(unittest.TestCase):
    """Test cases for partial date/time literals"""

    def test_granularities(self):
        """Missing fields default to the start of the period"""
        test_cases = [
            ('2027', utc(2027, 1, 1)),
            ('2027-05', utc(2027, 5, 1)),
            ('2027-07-31', utc(2027, 7, 31)),
            ('2027-05-02T23', utc(2027, 5, 2, 23)),
            ('2027-05-02T23:15', utc(2027, 5, 2, 23, 15)),
            ('2027-07-31T13:37:59', utc(2027, 7, 31, 13, 37, 59)),
        ]

        for literal, expected in test_cases:
            with self.subTest(literal=literal):
                self.assertEqual(parse_instant(literal), expected)

    def test_full_iso_string_with_zulu(self):
        self.assertEqual(parse_instant('2027-07-31T13:37:59Z'), utc(2027, 7, 31, 13, 37, 59))

    def test_case_insensitive(self):
        self.assertEqual(parse_instant('2027-07-31t13:37:59z'), utc(2027, 7, 31, 13, 37, 59))

    def test_offsets_are_converted_to_utc(self):
        test_cases = [
            ('2027-07-31T02:00+02:00', utc(2027, 7, 31, 0, 0)),
            ('2027-07-31T02:00+0200', utc(2027, 7, 31, 0, 0)),
            ('2027-07-31T02:00+02', utc(2027, 7, 31, 0, 0)),
            ('2027-07-30T22:30-01:30', utc(2027, 7, 31, 0, 0)),
        ]

        for literal, expected in test_cases:
            with self.subTest(literal=literal):
                result = parse_instant(literal)
                self.assertEqual(result, expected)
                self.assertEqual(result.utcoffset().total_seconds(), 0)

    def test_result_is_always_utc(self):
        result = parse_instant('2027-05')
        self.assertIs(result.tzinfo, timezone.utc)

    def test_invalid_literals(self):
        for literal in ['', 'yesterday', '27-05-02', '2027/05/02', '2027-13',
                        '2027-02-30', '2027-05-02T25', '2027-05-02 23:00',
                        '2027-05-02T23:00+19:00']:
            with self.subTest(literal=literal):
                with self.assertRaises(ParseError) as ctx:
                    parse_instant(literal)
                self.assertEqual(ctx.exception.literal, literal)

    def test_none_is_rejected(self):
        with self.assertRaises(ParseError):
            parse_instant(None)

    def test_error_message_names_literal(self):
        with self.assertRaises(ParseError) as ctx:
            parse_instant('not-a-date')
        self.assertIn('not-a-date', str(ctx.exception))


class TestParsePeriod(unittest.TestCase):
    """Test cases for ISO-8601 periods"""

    def test_periods(self):
        test_cases = [
            ('P1D', relativedelta(days=1)),
            ('P1M', relativedelta(months=1)),
            ('P1Y', relativedelta(years=1)),
            ('P2W', relativedelta(days=14)),
            ('P1Y2M3D', relativedelta(years=1, months=2, days=3)),
            ('p1d', relativedelta(days=1)),
            ('-P1D', relativedelta(days=-1)),
        ]

        for literal, expected in test_cases:
            with self.subTest(literal=literal):
                self.assertEqual(parse_period(literal), expected)

    def test_month_period_uses_calendar_arithmetic(self):
        start = utc(2027, 7, 31)
        self.assertEqual(start + parse_period('P1M'), utc(2027, 8, 31))
        self.assertEqual(utc(2027, 1, 31) + parse_period('P1M'), utc(2027, 2, 28))

    def test_invalid_periods(self):
        for literal in ['', 'P', '1D', 'PT1H', 'P1H', 'daily']:
            with self.subTest(literal=literal):
                with self.assertRaises(ParseError):
                    parse_period(literal)


class TestFormatting(unittest.TestCase):

    def test_format_date(self):
        self.assertEqual(format_date(utc(2027, 7, 31, 13, 37)), '2027-07-31')

    def test_format_instant(self):
        self.assertEqual(format_instant(utc(2027, 5, 2, 23)), '2027-05-02T23:00:00Z')


if __name__ == '__main__':
    unittest.main()
