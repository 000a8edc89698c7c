"""
Queue token package.

Signed cookie tokens that carry a client's wait/ban state, and the rotating
secret they are signed with.
"""
