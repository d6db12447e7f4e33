"""Gatekeep - credential and session lifecycle service.

Registration, login, logout, refresh token rotation, email verification
and password reset for external users and internal staff.
"""

__version__ = "0.1.0"
