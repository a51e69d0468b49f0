"""Utilities for importing leads and exporting enrichment results."""

from .exporters import export_results, results_to_dataframe, summarize_results
from .loaders import UnrecognizedDocumentError, UnsupportedFileTypeError, detect_shape, load_leads
from .models import ArrayShape, NestedShape

__all__ = [
    "ArrayShape",
    "NestedShape",
    "UnrecognizedDocumentError",
    "UnsupportedFileTypeError",
    "detect_shape",
    "export_results",
    "load_leads",
    "results_to_dataframe",
    "summarize_results",
]
