"""
DB Description Updater - Reconciliation Errors

Every failure aborts the whole run; the coordinator rolls back and re-raises.
"""


class DescriptionUpdateError(Exception):
    """Base class for reconciliation failures."""
    pass


class ScanError(DescriptionUpdateError):
    """Raised when a model root or model type cannot be introspected."""
    pass


class ResolutionError(DescriptionUpdateError):
    """Raised when no usable table or column name can be derived."""
    pass


class CatalogIOError(DescriptionUpdateError):
    """Raised when reading or writing the schema catalog fails."""
    pass
