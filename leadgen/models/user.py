from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from leadgen.db.base import Base


class PlanTier(str, Enum):
    FREEMIUM = "freemium"
    PREMIUM = "premium"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("email_credits >= 0", name="ck_users_email_credits_non_negative"),
    )

    id = Column(String, primary_key=True, index=True)  # Supabase auth user ID (uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    university = Column(String, nullable=True)
    study_level = Column(String, nullable=True)
    field_of_study = Column(String, nullable=True)
    # Set at signup, only the billing/upgrade flow changes it
    plan = Column(String, default=PlanTier.FREEMIUM.value, nullable=False)
    # Generated emails used so far; only CreditService's conditional update increments it
    email_credits = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, plan={self.plan}, email_credits={self.email_credits})>"
