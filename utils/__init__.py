"""
Shared helpers for Ping Monitor: logging setup, time helpers and input
validators.
"""
