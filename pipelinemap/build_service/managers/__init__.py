"""Data access managers for the build service.

Managers wrap an ``AsyncSession`` and raise domain exceptions from
``pipelinemap.build_service.errors``, never HTTP exceptions -- that
translation is the router's responsibility.  They flush but never commit;
transactions belong to ``db.transaction.TransactionCoordinator``.
"""
