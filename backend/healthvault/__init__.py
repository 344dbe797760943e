"""
Health vault: access control and audit logging for personal health data.
"""

__version__ = "0.1.0"
