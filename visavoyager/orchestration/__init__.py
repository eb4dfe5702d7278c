"""Orchestration for visa research.

- SelfCorrectingSearch: request, reconcile, evaluate, retry-with-critique loop
- Evaluator: independent auditor call with fail-safe parsing
- reconcile_sources: explicit + grounding citations, unique by URI
- tasks: one-shot purpose, advisory, checklist, drafting and passport calls
- VisaVoyager: boundary object bundling personas, auditor and provider
"""

from .errors import MalformedResponseError, PassportExtractionError, VisaVoyagerError
from .models import (
    ConfidenceTier,
    DocTemplate,
    DocumentItem,
    PassportDetails,
    SafetyTip,
    SourceCitation,
    UserProfile,
    Verification,
    VisaPolicy,
    VisaPurpose,
    VisaStatus,
    VisaStep,
)
from .parsing import Malformed, Ok, ParseResult, parse_json, strip_code_fences
from .reconciler import reconcile_sources
from .evaluator import Evaluator
from .search_loop import ProgressObserver, SearchAttempt, SelfCorrectingSearch
from .voyager import VisaVoyager

__all__ = [
    # Errors
    "VisaVoyagerError",
    "PassportExtractionError",
    "MalformedResponseError",
    # Models
    "ConfidenceTier",
    "DocTemplate",
    "DocumentItem",
    "PassportDetails",
    "SafetyTip",
    "SourceCitation",
    "UserProfile",
    "Verification",
    "VisaPolicy",
    "VisaPurpose",
    "VisaStatus",
    "VisaStep",
    # Parsing
    "Ok",
    "Malformed",
    "ParseResult",
    "parse_json",
    "strip_code_fences",
    # Core
    "reconcile_sources",
    "Evaluator",
    "ProgressObserver",
    "SearchAttempt",
    "SelfCorrectingSearch",
    "VisaVoyager",
]
