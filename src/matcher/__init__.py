"""
Matcher Service - deterministic candidate/offer scoring.

Scores a candidate against a job offer from weighted skill overlap,
experience and hard filters, then explains the score in French.
"""

from .explainer import Explanation, MatchExplainer
from .policy import ScoringPolicy
from .scorer import MatchScorer
from .service import MatchingService
from .trace import DatabaseTraceWriter, MatchTraceWriter

__all__ = [
    "DatabaseTraceWriter",
    "Explanation",
    "MatchExplainer",
    "MatchScorer",
    "MatchTraceWriter",
    "MatchingService",
    "ScoringPolicy",
]
