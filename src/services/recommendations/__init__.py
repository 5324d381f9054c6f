"""Recommendation services package."""

from src.services.recommendations.engine import RecommendationEngine
from src.services.recommendations.patterns import PatternAdvisory, analyze_patterns
from src.services.recommendations.retrieval import Candidate, EmbeddingRetriever
from src.services.recommendations.synthesizer import RecommendationSynthesizer, SynthesisContext

__all__ = [
    "Candidate",
    "EmbeddingRetriever",
    "PatternAdvisory",
    "RecommendationEngine",
    "RecommendationSynthesizer",
    "SynthesisContext",
    "analyze_patterns",
]
