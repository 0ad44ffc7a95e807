"""Standalone actions (manual check-in, manual cookie capture).

Each module is runnable as `python -m actions.<name>` and exposes a reusable
helper for the daemon.
"""
