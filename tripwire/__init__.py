"""Tripwire — learn from build and test failures, keep them from recurring."""

__version__ = "0.1.0"
