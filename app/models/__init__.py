from app.models.db import (
    PlanProgressRow,
    PlanRow,
    ProductReplacementRow,
    ProductRow,
    RecommendationRuleRow,
    SkinProfileRow,
)

__all__ = [
    "SkinProfileRow",
    "ProductRow",
    "RecommendationRuleRow",
    "PlanRow",
    "PlanProgressRow",
    "ProductReplacementRow",
]
