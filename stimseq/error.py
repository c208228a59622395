class StimSeqError(Exception):
    pass


class SpecError(StimSeqError, ValueError):
    """
    Raised when a trial plan or one of its trials/elements is malformed
    (missing required fields, negative timings, non-positive durations).
    """

    pass


class DistributionError(StimSeqError, ValueError):
    pass


class InvalidFieldSpecError(DistributionError):
    """
    Raised when a numeric field specification fails validation.
    All violations are collected in ``errors`` so that they can be
    reported in one pass.
    """

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class UnknownReferenceError(StimSeqError, LookupError):
    pass


class UnknownStimulusError(UnknownReferenceError):
    pass


class UnsupportedStimulusError(UnknownReferenceError):
    pass


class StreamNotFoundError(StimSeqError, LookupError):
    pass


class InvalidScopeError(StimSeqError, ValueError):
    pass


class InvalidContextError(StimSeqError, ValueError):
    pass


class InvalidParameterError(StimSeqError, ValueError):
    pass


class BufferOverflowError(StimSeqError):
    pass


class SchemaLoadError(StimSeqError):
    pass


class StimSeqWarning(UserWarning):
    pass


class OverflowTruncationWarning(StimSeqWarning):
    pass


class ClippingWarning(StimSeqWarning):
    pass


class RampTooLongWarning(StimSeqWarning):
    pass


class CalibrationWarning(StimSeqWarning):
    pass
