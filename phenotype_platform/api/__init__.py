"""
FastAPI layer: app factory, schemas (Pydantic DTOs), routes, middleware,
dependency providers and error handling.
"""
