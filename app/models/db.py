"""
SQLAlchemy models.

`skin_profiles`         immutable profile versions (one row per user + version)
`products`              catalog, read-only for the engine
`recommendation_rules`  prioritized rules (conditions / steps as JSON)
`plans`                 one Plan28 JSON document per user + profile version
`plan_progress`         current day / completed days per user
`product_replacements`  audit trail of "swap product" actions
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.database import Base


class SkinProfileRow(Base):
    __tablename__ = "skin_profiles"
    __table_args__ = (UniqueConstraint("user_id", "version", name="uq_skin_profiles_user_version"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    skin_type = Column(String(32), nullable=False)
    sensitivity_level = Column(String(16), nullable=False, default="low")
    age_group = Column(String(16))
    concerns = Column(JSON, default=list)
    acne_level = Column(Integer)
    inflammation = Column(Float, default=0)
    pigmentation = Column(Float, default=0)
    hydration = Column(Float, default=0)
    photoaging = Column(Float, default=0)
    oiliness = Column(Float, default=0)
    barrier = Column(Float, default=0)
    has_pregnancy = Column(Boolean, default=False, nullable=False)
    rosacea_risk = Column(Boolean, default=False, nullable=False)
    pigmentation_risk = Column(Boolean, default=False, nullable=False)
    contraindications = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SkinProfileRow(user={self.user_id}, version={self.version})>"


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    brand = Column(String(100), default="")
    price = Column(Float)
    step = Column(String(64), nullable=False, index=True)
    skin_types = Column(JSON, default=list)
    concerns = Column(JSON, default=list)
    avoid_if = Column(JSON, default=list)
    is_hero = Column(Boolean, default=False, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    published = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<ProductRow(id={self.id}, step={self.step})>"


class RecommendationRuleRow(Base):
    __tablename__ = "recommendation_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    conditions_json = Column(JSON, nullable=False)
    steps_json = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<RecommendationRuleRow(id={self.id}, priority={self.priority})>"


class PlanRow(Base):
    __tablename__ = "plans"
    __table_args__ = (UniqueConstraint("user_id", "profile_version", name="uq_plans_user_version"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    skin_profile_id = Column(Integer, ForeignKey("skin_profiles.id", ondelete="SET NULL"))
    profile_version = Column(Integer, nullable=False)
    plan_json = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<PlanRow(user={self.user_id}, version={self.profile_version})>"


class PlanProgressRow(Base):
    __tablename__ = "plan_progress"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    current_day = Column(Integer, default=1, nullable=False)
    completed_days = Column(JSON, default=list)
    done_slots = Column(JSON, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ProductReplacementRow(Base):
    __tablename__ = "product_replacements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    step_category = Column(String(64), nullable=False)
    old_product_id = Column(Integer, nullable=False)
    new_product_id = Column(Integer, nullable=False)
    reason = Column(String(50), default="user_swap")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
