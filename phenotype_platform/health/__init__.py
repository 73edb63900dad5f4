"""
Dependency probes and health status derivation.
"""
