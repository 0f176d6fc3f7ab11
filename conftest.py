"""Pytest configuration for jobfilter tests."""

# Ensure project root is on sys.path for imports during pytest collection
import os
import sys

ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
