from leadgen.models.user import User, PlanTier

__all__ = [
    "User",
    "PlanTier",
]
