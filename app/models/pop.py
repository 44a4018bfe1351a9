from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
)

from app.core.database import Base


class Tenant(Base):
    """Registered owner of an API key. Provisioned out-of-band, never deleted here."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    api_key = Column(String, nullable=False, unique=True)


class PlayEvent(Base):
    """One persisted proof-of-play record. Append-only."""

    __tablename__ = "pops"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(
        Integer, ForeignKey("tenants.id"), nullable=False, index=True
    )
    player_id = Column(BigInteger, nullable=False)
    display_unit_id = Column(BigInteger, nullable=False)
    frame_id = Column(BigInteger, nullable=False)
    active_screens_count = Column(Integer, nullable=False)
    ad_copy_id = Column(BigInteger, nullable=False)
    schedule_id = Column(BigInteger, nullable=False)
    impressions = Column(Integer, nullable=False)
    interactions = Column(Integer, nullable=False)
    # Milliseconds since epoch of the player's local (naive) clock
    end_time = Column(BigInteger, nullable=False)
    duration_ms = Column(Integer, nullable=False)
    service_name = Column(String, nullable=False)
    service_value = Column(String, nullable=False)
    extra_data = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("player_id >= 0", name="ck_pops_player_id"),
        CheckConstraint("active_screens_count >= 0", name="ck_pops_screens"),
        CheckConstraint("impressions >= 0", name="ck_pops_impressions"),
        CheckConstraint("interactions >= 0", name="ck_pops_interactions"),
        CheckConstraint("duration_ms >= 0", name="ck_pops_duration"),
    )
