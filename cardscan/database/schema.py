"""
cardscan/database/schema.py: Catalog database schema using SQLAlchemy
"""

from sqlalchemy import create_engine, Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime

from cardscan.config import DATABASE_PATH

Base = declarative_base()


class CatalogCard(Base):
    """Reference catalog card. Several rows may share a card_number."""
    __tablename__ = "catalog_cards"

    id = Column(Integer, primary_key=True, autoincrement=True)  # Preserves catalog order
    record_id = Column(String(100), nullable=True, index=True)
    card_number = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="", index=True)
    year = Column(String(10), nullable=True)
    set_name = Column(String(255), nullable=True, index=True)
    variant = Column(String(255), nullable=True)
    attributes = Column(JSON, nullable=True)  # Weapon, power, and other descriptive fields
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<CatalogCard(id={self.id}, number='{self.card_number}', name='{self.name}')>"


def make_session_factory(database_path=DATABASE_PATH):
    """Create an engine + session factory for a SQLite catalog file."""
    engine = create_engine(f"sqlite:///{database_path}", echo=False)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    """Initialize database - create all tables."""
    Base.metadata.create_all(bind=engine)
