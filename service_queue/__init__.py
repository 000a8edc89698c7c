"""
Zant queue gateway service.
"""
