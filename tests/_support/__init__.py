"""Test support utilities for resilient tests."""
