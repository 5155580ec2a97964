"""
Per-kind analysis of job output.
"""

from .analyzers import ANALYZERS, Analyzer, get_analyzer

__all__ = ["ANALYZERS", "Analyzer", "get_analyzer"]
