"""
Test suite for the cookbook recipe index.

Unit tests cover each component of the cookbook package in isolation;
test_end_to_end exercises bulk load, watcher events, queries and concurrent
writers together against a temporary recipes directory.
"""
