"""
Command line interface.
"""

__all__ = ["threatlensctl"]
