"""
credit_kernel -- domain types, persistence and services for store credit.

Layers:
    domain/    frozen dataclasses, cents helpers, clock (zero I/O)
    db/        SQLAlchemy base classes and engine/session management
    models/    ORM models for users, transactions and settings
    services/  settings, ledger, checkout and migration-store services

The pure calculation engines live in ``credit_engines`` and only import
``credit_kernel.domain``, ``credit_kernel.exceptions`` and logging.
"""
