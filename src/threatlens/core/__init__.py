"""
Shared infrastructure: configuration, logging setup and exceptions.
"""

__all__ = ["config", "exceptions", "logging_setup"]
