"""
PostgreSQL persistence layer: async engine handle and ORM models.
"""
