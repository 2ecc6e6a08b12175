"""SQL storage for ``finance_insights``.

``FiTransaction`` maps the ``fi_transactions`` table. ``metadata`` is the
Alembic autogenerate target; sessions come from :mod:`db.client`.
"""

from __future__ import annotations

from .models.finance import Base, FiTransaction

metadata = Base.metadata

__all__ = ["Base", "FiTransaction", "metadata"]
