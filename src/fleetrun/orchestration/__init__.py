"""Concurrent remote command execution: build, run, collect."""
