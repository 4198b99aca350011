"""Moving notes between storage backends."""

from .engine import MigrationDecision, MigrationEngine, MigrationEntry, MigrationReport

__all__ = ["MigrationDecision", "MigrationEngine", "MigrationEntry", "MigrationReport"]
