"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the transaction table written by ``finance_insights``.
"""

from .finance import Base, FiTransaction

__all__ = [
    "Base",
    "FiTransaction",
]
