"""
Forbo - Exceptions
==================

Error taxonomy of the selection engine. Soft shortfalls are recovered by the
algorithm itself and never show up here.
"""


class ForboError(Exception):
    """Base exception for engine operations."""
    pass


class PreconditionError(ForboError):
    """Caller contract violation. Fatal, never retried."""
    pass


class TariffError(PreconditionError):
    """Requested (numbers, stars) pair is not a legal tariff."""
    pass


class UniqueCombinationError(ForboError):
    """No combination outside the forbidden set could be produced."""
    pass
