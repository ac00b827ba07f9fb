#!/usr/bin/env python3
"""
Test runner for the Battle Arena bot.
Runs all unit tests, or one category of them, and prints a summary report.

Usage:
    python tests/run_all_tests.py [category]
"""
import unittest
import sys
import time
from pathlib import Path

# Make `battle_arena` and `tests` importable when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

CATEGORIES = {
    'core': ['tests.test_models', 'tests.test_scoring', 'tests.test_scheduler', 'tests.test_opponent', 'tests.test_results'],
    'engine': ['tests.test_engine'],
    'data': ['tests.test_question_bank'],
    'config': ['tests.test_config_manager'],
    'controller': ['tests.test_battle_controller'],
    'bot': ['tests.test_bot_discord_integration'],
}


def load_suite(module_names):
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for module_name in module_names:
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except Exception as e:
            print(f"✗ Failed to load {module_name}: {e}")
    return suite


def run_test_suite(module_names):
    """Run the given test modules and print a summary report."""
    print("=" * 70)
    print("Battle Arena - Test Suite")
    print("=" * 70)

    suite = load_suite(module_names)

    print("\n" + "=" * 70)
    print("Running Tests...")
    print("=" * 70)

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    elapsed = time.time() - start_time

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)
    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed / total_tests) * 100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {elapsed:.2f} seconds")

    for title, problems in (("FAILURES", result.failures), ("ERRORS", result.errors)):
        if problems:
            print("\n" + "-" * 50)
            print(f"{title}:")
            print("-" * 50)
            for test, traceback in problems:
                print(f"\n{test}:")
                print(traceback)

    return failures == 0 and errors == 0


if __name__ == '__main__':
    if len(sys.argv) > 1:
        category = sys.argv[1]
        if category not in CATEGORIES:
            print(f"Unknown category: {category}")
            print(f"Available categories: {', '.join(CATEGORIES)}")
            sys.exit(1)
        modules = CATEGORIES[category]
    else:
        modules = [module for names in CATEGORIES.values() for module in names]

    sys.exit(0 if run_test_suite(modules) else 1)
