"""
Test Package

Unit and end-to-end tests for mrtune. Shared profile, cluster and
configuration builders live in tests.fixtures.
"""
