"""Matching search pipeline - remote query, client-side filters, and the candidate cursor."""

from tripmatch.search.filters import FilterOptions, dedupe_by_destination, filter_candidates
from tripmatch.search.models import SearchRequest, SearchState
from tripmatch.search.orchestrator import PAGE_SIZE, SearchOrchestrator
from tripmatch.search.response import Err, Ok, describe_error, parse_search_response

__all__ = [
    "Err",
    "FilterOptions",
    "Ok",
    "PAGE_SIZE",
    "SearchOrchestrator",
    "SearchRequest",
    "SearchState",
    "dedupe_by_destination",
    "describe_error",
    "filter_candidates",
    "parse_search_response",
]
