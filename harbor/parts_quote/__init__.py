# Marine spare parts quotation: import reconciliation pipeline
# Siloed module - no imports from the web backend

from .models import (
    CatalogPart,
    ImportCandidate,
    MatchKind,
    MatchResult,
    SelectionEntry,
    CustomerInfo,
    ReconcileProgress,
    ReconcileResult,
    QuoteStatistics,
)
from .errors import (
    QuoteError,
    EmptyExtraction,
    ExtractionFailed,
    ExtractionUnavailable,
    NoValidData,
    CandidateProcessingError,
    EntryNotFound,
)
from .config import load_config, Config
from .normalize import exact_key, case_insensitive_key, no_space_key, fuzzy_key
from .extractor import extract_candidates, extract_from_file, degraded_fallback
from .matcher import match_one, match_candidate, summarize_results
from .reconcile import reconcile, iter_reconcile, CancelToken
from .store import BlobStore, InMemoryBlobStore, SqliteBlobStore
from .session import QuoteSession
from .imports import import_file, import_batch, import_catalog_file
from .report import format_console, export_csv, export_xlsx

__version__ = "1.0.0"

__all__ = [
    # Models
    "CatalogPart",
    "ImportCandidate",
    "MatchKind",
    "MatchResult",
    "SelectionEntry",
    "CustomerInfo",
    "ReconcileProgress",
    "ReconcileResult",
    "QuoteStatistics",
    # Errors
    "QuoteError",
    "EmptyExtraction",
    "ExtractionFailed",
    "ExtractionUnavailable",
    "NoValidData",
    "CandidateProcessingError",
    "EntryNotFound",
    # Config
    "Config",
    "load_config",
    # Normalizer
    "exact_key",
    "case_insensitive_key",
    "no_space_key",
    "fuzzy_key",
    # Extractor
    "extract_candidates",
    "extract_from_file",
    "degraded_fallback",
    # Matcher
    "match_one",
    "match_candidate",
    "summarize_results",
    # Reconciliation
    "reconcile",
    "iter_reconcile",
    "CancelToken",
    # Stores
    "BlobStore",
    "InMemoryBlobStore",
    "SqliteBlobStore",
    # Session / workflows
    "QuoteSession",
    "import_file",
    "import_batch",
    "import_catalog_file",
    # Report
    "format_console",
    "export_csv",
    "export_xlsx",
]
