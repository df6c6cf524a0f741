"""SQLAlchemy models for walletsync database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC.

    SQLite drops tzinfo, so values are normalized to UTC on the way in and
    tagged as UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Amounts carry up to 3 minor digits (KWD, BHD); rates need more headroom
Amount = Numeric(18, 4)
Rate = Numeric(20, 10)


class Wallet(Base):
    """Wallet model."""

    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    currency_code = Column(String(3), nullable=False)
    initial_balance = Column(Amount, nullable=False, default=0)
    current_balance = Column(Amount, nullable=False, default=0)
    wallet_type = Column(String, nullable=False, default="other")
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Bank linkage
    external_account_id = Column(String, unique=True, nullable=True)
    external_iban = Column(String, nullable=True)
    external_card_type = Column(String, nullable=True)
    external_masked_pan = Column(String, nullable=True)
    last_synced_at = Column(UTCDateTime, nullable=True)

    # Relationships
    transactions = relationship("Transaction", back_populates="wallet", cascade="all, delete-orphan")


class Category(Base):
    """Category model."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    category_type = Column(String, nullable=False, default="expense")
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # Relationships
    sub_categories = relationship(
        "SubCategory", back_populates="category", cascade="all, delete-orphan"
    )


class SubCategory(Base):
    """Sub-category model."""

    __tablename__ = "sub_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_sub_category_name"),)

    # Relationships
    category = relationship("Category", back_populates="sub_categories")


class Rule(Base):
    """Categorization rule model."""

    __tablename__ = "rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    rule_type = Column(String, nullable=False)
    match_value = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    sub_category_id = Column(Integer, ForeignKey("sub_categories.id"), nullable=True)
    priority = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    external_id = Column(String, nullable=True)
    amount = Column(Amount, nullable=False)
    original_amount = Column(Amount, nullable=True)
    original_currency_code = Column(String(3), nullable=True)
    description = Column(String, nullable=False, default="")
    occurred_at = Column(UTCDateTime, nullable=False)
    mcc = Column(Integer, nullable=True)
    is_hold = Column(Boolean, default=False, nullable=False)
    cashback_amount = Column(Amount, nullable=True)
    commission_amount = Column(Amount, nullable=True)
    balance_after = Column(Amount, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    sub_category_id = Column(Integer, ForeignKey("sub_categories.id"), nullable=True)
    rule_id = Column(Integer, ForeignKey("rules.id"), nullable=True)
    note = Column(String, nullable=True)
    is_from_bank = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    # At most one transaction per external id within a wallet
    __table_args__ = (UniqueConstraint("wallet_id", "external_id", name="uq_wallet_external_id"),)

    # Relationships
    wallet = relationship("Wallet", back_populates="transactions")


class ExchangeRate(Base):
    """Exchange rate model, one row per (from, to, source)."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True)
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)
    rate = Column(Rate, nullable=False)
    buy_rate = Column(Rate, nullable=True)
    sell_rate = Column(Rate, nullable=True)
    source = Column(String, nullable=False, default="manual")
    fetched_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("from_currency", "to_currency", "source", name="uq_rate_pair_source"),
        Index("ix_rate_pair_fetched", "from_currency", "to_currency", "fetched_at"),
    )


class Setting(Base):
    """Key-value store for sync bookkeeping."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
