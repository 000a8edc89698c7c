"""
Gateway domain package: the per-request decision logic and its HTTP
middleware.
"""
