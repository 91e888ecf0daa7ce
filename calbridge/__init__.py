"""
calbridge - Google Calendar adapter with token-failure handling.
"""

__version__ = "0.1.0"
