"""
Feature modules for clubsync.

Each feature is a self-contained module with:
- models.py - SQLAlchemy models
- schemas.py - Pydantic schemas / value objects
- repository.py - Data access (optional)
- service.py - Business logic (optional)
"""
