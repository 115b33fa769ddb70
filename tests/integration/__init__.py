"""Integration tests for tagspawn."""
