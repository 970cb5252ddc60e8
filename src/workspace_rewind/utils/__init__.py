"""
Shared utilities: logging setup, error hierarchy and configuration.
"""
