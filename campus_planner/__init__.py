"""Academic task planner engine: tasks, settings, queries, persistence and backups."""

__version__ = "0.1.0"
