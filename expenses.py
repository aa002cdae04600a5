import logging
import re
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError, StoreError, ValidationError
from models import Expense, utcnow

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# SQLite INTEGER is a signed 64-bit value
MAX_AMOUNT = 2**63 - 1


def _is_valid_date(value) -> bool:
    if not isinstance(value, str) or not DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def validate_expense(fields: dict) -> dict:
    """Check and normalize the mutable fields of an expense."""
    date = fields.get("date")
    category = (fields.get("category") or "").strip()
    amount = fields.get("amount")

    if not date or not category or amount is None:
        raise ValidationError()
    if not _is_valid_date(date):
        raise ValidationError("日付はYYYY-MM-DD形式で入力してください")
    if isinstance(amount, bool) or not isinstance(amount, int) or not 0 < amount <= MAX_AMOUNT:
        raise ValidationError()

    return {
        "date": date,
        "category": category,
        "item_name": fields.get("item_name") or "",
        "store": fields.get("store") or "",
        "amount": amount,
    }


def list_expenses(db: Session, year=None, month=None):
    query = db.query(Expense)

    # Both parts are needed to filter; one on its own returns everything
    if year is not None and month is not None:
        prefix = f"{int(year):04d}-{int(month):02d}"
        query = query.filter(Expense.date.like(prefix + "%"))

    try:
        return (
            query.order_by(Expense.date.desc(), Expense.created_at.desc(), Expense.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Listing expenses failed")
        raise StoreError("データ取得エラー") from exc


def create_expense(db: Session, fields: dict) -> Expense:
    values = validate_expense(fields)
    now = utcnow()
    expense = Expense(**values, created_at=now, updated_at=now)
    try:
        db.add(expense)
        db.commit()
        db.refresh(expense)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Inserting expense failed")
        raise StoreError("データ保存エラー") from exc

    logger.info("Created expense %s (%s, %s)", expense.id, expense.date, expense.category)
    return expense


def update_expense(db: Session, expense_id: int, fields: dict) -> Expense:
    values = validate_expense(fields)
    values["updated_at"] = utcnow()
    try:
        changed = (
            db.query(Expense)
            .filter(Expense.id == expense_id)
            .update(values, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Updating expense %s failed", expense_id)
        raise StoreError("データ更新エラー") from exc

    if changed == 0:
        raise NotFoundError()

    db.expire_all()
    return db.get(Expense, expense_id)


def delete_expense(db: Session, expense_id: int):
    try:
        deleted = (
            db.query(Expense)
            .filter(Expense.id == expense_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Deleting expense %s failed", expense_id)
        raise StoreError("データ削除エラー") from exc

    if deleted == 0:
        raise NotFoundError()
    logger.info("Deleted expense %s", expense_id)
