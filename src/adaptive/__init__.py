"""
Adaptive Recommendation Engine.

Components:
- preferences: Learner signals inferred from session history
- generators: Next-to-learn, weak points, related topics, review, rest
- RecommendationEngine: Filter, diversify, rank and truncate
- analyze_learning_pattern: Model-written progress overview
"""
from src.adaptive.models import (
    FatigueLevel,
    LearningPatternAnalysis,
    LearningPreferences,
    Recommendation,
    RecommendationConfig,
    RecommendationType,
    TimeOfDay,
)
from src.adaptive.preferences import analyze_learning_preferences
from src.adaptive.recommendation_engine import (
    RecommendationEngine,
    analyze_learning_pattern,
    enhance_reasons,
    export_plan,
    generate_recommendations,
)

__all__ = [
    "FatigueLevel",
    "LearningPatternAnalysis",
    "LearningPreferences",
    "Recommendation",
    "RecommendationConfig",
    "RecommendationType",
    "TimeOfDay",
    "analyze_learning_preferences",
    "RecommendationEngine",
    "analyze_learning_pattern",
    "enhance_reasons",
    "export_plan",
    "generate_recommendations",
]
