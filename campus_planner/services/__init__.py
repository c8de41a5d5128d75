from campus_planner.services import (
    analytics_service,
    backup_service,
    import_export_service,
    query_service,
    validation_service,
)


__all__ = [
    "analytics_service",
    "backup_service",
    "import_export_service",
    "query_service",
    "validation_service",
]
