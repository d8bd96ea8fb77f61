"""
Utility modules for the shop planner application.

This package contains shared utility functions and helpers used across
the application, including datetime utilities, board geometry, error
messages, and database query helpers.
"""
