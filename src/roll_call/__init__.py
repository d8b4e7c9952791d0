"""Roll-call attendance engine.

This package is organized by feature modules (users, auth, sessions, attendance, ...)
with a thin Flask controller layer over service/repository layers.
"""
