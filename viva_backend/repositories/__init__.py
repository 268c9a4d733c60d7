"""
Repository layer for database operations.
"""
from .viva_result_repo import VivaResultRepository

__all__ = ["VivaResultRepository"]
