"""
Interaction layer for intent classification.

Sits between the SMS transport and the handlers. Pattern classification is
deterministic and local; the AI classifier escalates to a language model
only when patterns are not confident.
"""
from .intent_types import Intent
from .intent_parameters import INTENT_PARAMETERS, parameters_for
from .classification import ClassificationResult, is_confident
from .pattern_classifier import PatternClassifier
from .ai_service import AICompletionService, LangChainCompletionService
from .ai_classifier import AIClassifier

__all__ = [
    "Intent",
    "INTENT_PARAMETERS",
    "parameters_for",
    "ClassificationResult",
    "is_confident",
    "PatternClassifier",
    "AICompletionService",
    "LangChainCompletionService",
    "AIClassifier",
]
