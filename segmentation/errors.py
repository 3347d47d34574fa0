"""Exceptions raised by the segmentation engine."""


class SegmentationError(Exception):
    """Base class for engine errors."""


class ConfigurationError(SegmentationError):
    """Invalid window table or engine settings. Raised at startup, never swallowed."""


class LedgerQueryError(SegmentationError):
    """The activity ledger could not be queried for an event kind."""


class LedgerDataError(SegmentationError):
    """A counter entry is malformed (missing/unparseable date, negative count)."""
