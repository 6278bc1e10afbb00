"""Transaction categorization.

Deterministic, local categorization of bank transactions from their
descriptions: a prioritized rule store, a fallback chain of strategies,
and rule learning from manual corrections. No network calls are made.
"""

from .engine import CategorizationEngine
from .learning import AutoLearner, extract_pattern
from .store import RuleStore

__all__ = ["AutoLearner", "CategorizationEngine", "RuleStore", "extract_pattern"]
