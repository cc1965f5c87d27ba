"""
SQLAlchemy declarative base.

All feature models inherit from Base so they share one metadata object.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
