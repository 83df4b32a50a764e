"""
Admin authentication: login, register, token refresh, logout and
password reset. Every login attempt is written to the login log.
"""
