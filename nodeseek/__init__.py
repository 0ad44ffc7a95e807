"""Core modules for nodeseek-checkin.

This package contains the NodeSeek client, the credential lifecycle
(validation, capture, freshness policy), the check-in classifier and the
daemon entry point.

Recommended invocation (ensures imports work reliably):
- python -m nodeseek.checkin_daemon
- python -m nodeseek.authorize
"""
