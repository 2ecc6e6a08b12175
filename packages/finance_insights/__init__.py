"""Public interface for the ``finance_insights`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import AnalysisReport, analyze
from .budget import aggregate, summarize
from .categories import DEFAULT_KEYWORDS, OTHER, UNCATEGORIZED, BudgetCategory, KeywordTables
from .challenges import CHALLENGE_CATALOG, build_profile, personalize
from .config import EnhancementConfig
from .enhance import enhance
from .health import DEFAULT_WEIGHTS, HealthWeights, SubScores, score
from .insights import budget_insights
from .models import (
    BudgetSummary,
    CategoryTotal,
    ChallengeCriteria,
    ChallengeTemplate,
    Confidence,
    Direction,
    HealthScore,
    InsightKind,
    PersonalizedChallenge,
    Recommendation,
    RecommendationSet,
    RecurringCandidate,
    RecurringDetection,
    ScoreComponent,
    SpendingProfile,
    Transaction,
    TransactionType,
    Trend,
)
from .normalizers import TransactionNormalizer, normalize
from .recommendations import generate, generate_recommendations
from .recurring import detect_recurring

__all__ = [
    # API
    "aggregate",
    "analyze",
    "budget_insights",
    "build_profile",
    "detect_recurring",
    "enhance",
    "generate",
    "generate_recommendations",
    "normalize",
    "personalize",
    "score",
    "summarize",
    "TransactionNormalizer",
    # Configuration
    "CHALLENGE_CATALOG",
    "DEFAULT_KEYWORDS",
    "DEFAULT_WEIGHTS",
    "EnhancementConfig",
    "HealthWeights",
    "KeywordTables",
    "SubScores",
    # Models / types
    "AnalysisReport",
    "BudgetCategory",
    "BudgetSummary",
    "CategoryTotal",
    "ChallengeCriteria",
    "ChallengeTemplate",
    "Confidence",
    "Direction",
    "HealthScore",
    "InsightKind",
    "OTHER",
    "PersonalizedChallenge",
    "Recommendation",
    "RecommendationSet",
    "RecurringCandidate",
    "RecurringDetection",
    "ScoreComponent",
    "SpendingProfile",
    "Transaction",
    "TransactionType",
    "Trend",
    "UNCATEGORIZED",
]
