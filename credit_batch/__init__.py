"""
credit_batch -- batch infrastructure and the points-to-store-credit migration.

Provides a grouped, thread-pooled executor with per-item failure
isolation, the migration task, the orchestrator that produces a
MigrationReport, and the command-line entry points.

Architecture:
    credit_batch/ is a top-level package.  Nothing in credit_kernel or
    credit_engines imports from credit_batch.
"""
