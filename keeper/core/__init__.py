"""Core interfaces, configuration, errors and atomic execution."""
