#!/usr/bin/env python3
"""
Run the dbexport unittest suites

Usage:
    python run_tests.py                          # every tests/test_*.py
    python run_tests.py query_builder temporal   # selected suites
    python run_tests.py -k partition --failfast  # filter test names
"""

import argparse
import os
import sys
import unittest

ROOT = os.path.dirname(os.path.abspath(__file__))
TESTS_DIR = os.path.join(ROOT, 'tests')

sys.path.insert(0, ROOT)


def available_suites():
    """Suite names derived from tests/test_<name>.py"""
    return sorted(
        name[len('test_'):-len('.py')]
        for name in os.listdir(TESTS_DIR)
        if name.startswith('test_') and name.endswith('.py')
    )


def load_suite(names, pattern=None):
    loader = unittest.TestLoader()
    if pattern:
        loader.testNamePatterns = [f'*{pattern}*']

    if not names:
        return loader.discover(TESTS_DIR, pattern='test_*.py', top_level_dir=TESTS_DIR)

    sys.path.insert(0, TESTS_DIR)
    return unittest.TestSuite(loader.loadTestsFromName(f'test_{name}') for name in names)


def main(argv=None):
    suites = available_suites()
    parser = argparse.ArgumentParser(description='Run dbexport tests')
    parser.add_argument('suites', nargs='*', metavar='SUITE',
                        help=f"one of: {', '.join(suites)} (default: all)")
    parser.add_argument('-k', dest='pattern', help='only run tests whose name contains PATTERN')
    parser.add_argument('--failfast', action='store_true')
    parser.add_argument('-q', '--quiet', action='store_true')
    args = parser.parse_args(argv)

    unknown = [name for name in args.suites if name not in suites]
    if unknown:
        parser.error(f"unknown suite(s): {', '.join(unknown)}")

    suite = load_suite(args.suites, args.pattern)
    result = unittest.TextTestRunner(
        verbosity=1 if args.quiet else 2,
        failfast=args.failfast,
    ).run(suite)

    problems = len(result.failures) + len(result.errors)
    print(f"{result.testsRun} tests, {problems} problems, {len(result.skipped)} skipped")
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main())
