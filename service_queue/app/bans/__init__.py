"""
Ban registry package.
"""
