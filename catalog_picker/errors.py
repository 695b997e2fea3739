"""Exception hierarchy for the catalog picker."""


class CatalogPickerError(Exception):
    """Base error for the catalog picker."""


class CatalogLoadFailure(CatalogPickerError):
    """Raised when a catalog source cannot be read.

    Distinct from an empty catalog: the session surfaces it as an error
    state instead of a zero-result list. Retrying is left to the source.
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load catalog from {source}: {reason}")
