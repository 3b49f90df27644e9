"""Utility functions, constants, types and logging for PoreBox."""
