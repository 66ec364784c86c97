"""
Test suite for gitzip.

This package contains tests for the archive core, the command-line front end
and the settings loader.

Test Categories:
- Unit tests: path normalizer, ignore rules, enumerator, naming, containers
- Integration tests: build / extract / compress against temporary trees
- Edge case tests: unreadable entries, cancellation, malformed input
"""
