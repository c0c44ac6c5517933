"""Test suites for gcl-sink."""
