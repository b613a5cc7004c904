"""Run the suite without pytest: ``python tests/test_runner.py [pattern]``."""
import os
import sys
import unittest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.dirname(TESTS_DIR)


def load_suite(pattern="test_*.py"):
    return unittest.defaultTestLoader.discover(TESTS_DIR, pattern=pattern, top_level_dir=ROOT_DIR)


if __name__ == "__main__":
    pattern = sys.argv[1] if len(sys.argv) > 1 else "test_*.py"
    result = unittest.TextTestRunner(verbosity=2).run(load_suite(pattern))
    sys.exit(0 if result.wasSuccessful() else 1)
