"""Exceptions raised by the orchestrators."""


class VisaVoyagerError(Exception):
    """Base class for orchestrator failures."""


class PassportExtractionError(VisaVoyagerError):
    """Neither the holder's name nor the passport number could be read."""


class MalformedResponseError(VisaVoyagerError):
    """Every search attempt returned unparseable structured output."""
