"""Writing-style inference components."""

from .analyzer import compute_fingerprint, select_representative_samples
from .service import StyleResult, StyleService, format_style

__all__ = [
    "compute_fingerprint",
    "select_representative_samples",
    "StyleResult",
    "StyleService",
    "format_style",
]
