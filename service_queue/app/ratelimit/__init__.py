"""
Rate limiting package for the queue gateway.

Holds the per-fingerprint sliding-window limiter that bounds how many
requests one client may make inside the configured window.
"""
