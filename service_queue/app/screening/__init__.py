"""
Client screening package: header fingerprints and suspicion heuristics.
"""
