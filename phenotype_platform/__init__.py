"""
Phenotype platform backend.

Environment validation, feature flags, dependency health probes and the
aggregate ``/health`` endpoint, plus Redis-backed rate limiting.
"""

__version__ = "1.0.0"
