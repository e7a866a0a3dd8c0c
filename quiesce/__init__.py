"""
Quiesce.

Watches a directory tree and reruns a command after changes settle.
Requires Python 3.11+.
"""

__version__ = "0.1.0"
