"""
Module ORM Registry (``rental_modules._orm_registry``).

Ensures kernel and module ORM models are imported so that
``Base.metadata`` contains every table before ``create_tables()`` runs.
Scripts and ``tests/conftest.py`` go through ``rental_kernel.db.engine.create_tables``,
which calls ``import_all_orm_models`` first.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``rental_modules.*.orm`` module. Idempotent."""
    import rental_kernel.models  # noqa: F401
    import rental_modules.revenue.orm  # noqa: F401
