'''Exceptions raised by the barcode designer core'''


class BarcodeDesignerError(Exception):
    """Base class for all barcode designer errors"""


class ConfigurationError(BarcodeDesignerError, ValueError):
    """Invalid pattern, constraint or search parameter"""


class MetricMismatch(BarcodeDesignerError, ValueError):
    """Distance requested between barcodes the metric cannot compare"""


class GenerationExhaustion(BarcodeDesignerError):
    """Candidate pool could not reach the requested size within its attempt budget"""

    def __init__(self, requested: int, generated: int, message: str = ''):
        self.requested = requested
        self.generated = generated
        self.shortfall = requested - generated
        super().__init__(message or
                         f"Only generated {generated} of {requested} requested barcodes "
                         f"(shortfall: {self.shortfall})")


class CancellationSignal(BarcodeDesignerError):
    """Raised from a progress callback to request cancellation.

    The search treats it like a callback returning False: the running
    search stops at the next checkpoint and keeps its best result.
    """
