"""Troubleshooting helpers; not used by the daemon."""
