"""VisaVoyager: search-grounded visa research with self-correcting verification."""

from .orchestration import (
    VisaVoyager,
    VisaPolicy,
    VisaStatus,
    Verification,
    SourceCitation,
)

__all__ = [
    "VisaVoyager",
    "VisaPolicy",
    "VisaStatus",
    "Verification",
    "SourceCitation",
]
