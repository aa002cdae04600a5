from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime

from database import Base


def utcnow():
    # naive UTC, which is what SQLite's DATETIME columns round-trip
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_public(self):
        return {"id": self.id, "username": self.username}


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    category = Column(String, nullable=False)
    item_name = Column(String, default="", nullable=False)
    store = Column(String, default="", nullable=False)
    amount = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.date,
            "category": self.category,
            "item_name": self.item_name,
            "store": self.store,
            "amount": self.amount,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
