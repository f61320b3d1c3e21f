"""
Integration tests for autoprobe.

These tests compile real probe crates with an installed rustc and are
skipped when none is available.
"""
