from datetime import datetime
from sqlalchemy import func, extract

from circulation.extensions import db
from circulation.models.borrow import BorrowRecord
from circulation import fines
from circulation.repositories.locks import for_update

SORT_FIELDS = {
    "borrow_date": BorrowRecord.borrow_date,
    "due_date": BorrowRecord.due_date,
    "return_date": BorrowRecord.return_date,
    "status": BorrowRecord.status,
}


class BorrowRepo:
    @staticmethod
    def get(borrow_id: int):
        return BorrowRecord.query.get(borrow_id)

    @staticmethod
    def get_for_update(borrow_id: int):
        return for_update(BorrowRecord.query.filter_by(id=borrow_id), BorrowRecord).first()

    @staticmethod
    def create(record: BorrowRecord):
        # commit yok: UnitOfWork kapatır
        db.session.add(record)
        db.session.flush()
        return record

    @staticmethod
    def count_open_by_user(user_id: int) -> int:
        return BorrowRecord.query.filter(
            BorrowRecord.user_id == user_id,
            BorrowRecord.status.in_(fines.OPEN_STATUSES)
        ).count()

    @staticmethod
    def find_open_by_user_and_book(user_id: int, book_id: int):
        return BorrowRecord.query.filter(
            BorrowRecord.user_id == user_id,
            BorrowRecord.book_id == book_id,
            BorrowRecord.status.in_(fines.OPEN_STATUSES)
        ).first()

    @staticmethod
    def find_stale_active(now: datetime):
        return BorrowRecord.query.filter(
            BorrowRecord.status == fines.ACTIVE,
            BorrowRecord.due_date < now
        ).all()

    @staticmethod
    def find_unpaid_overdue():
        return BorrowRecord.query.filter_by(status=fines.OVERDUE, fine_paid=False).all()

    @staticmethod
    def paginate(user_id=None, book_id=None, status=None, sort="-borrow_date", page=1, per_page=10):
        query = BorrowRecord.query
        if user_id is not None:
            query = query.filter(BorrowRecord.user_id == user_id)
        if book_id is not None:
            query = query.filter(BorrowRecord.book_id == book_id)
        if status:
            query = query.filter(BorrowRecord.status == status)

        field = sort.lstrip("-")
        column = SORT_FIELDS.get(field, BorrowRecord.borrow_date)
        order = column.desc() if sort.startswith("-") else column.asc()

        return query.order_by(order, BorrowRecord.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    @staticmethod
    def list_by_user(user_id: int):
        return BorrowRecord.query.filter_by(user_id=user_id).order_by(
            BorrowRecord.borrow_date.desc(), BorrowRecord.id.desc()
        ).all()

    @staticmethod
    def list_by_book(book_id: int):
        return BorrowRecord.query.filter_by(book_id=book_id).order_by(
            BorrowRecord.borrow_date.desc(), BorrowRecord.id.desc()
        ).all()

    @staticmethod
    def list_overdue():
        return BorrowRecord.query.filter_by(status=fines.OVERDUE).order_by(BorrowRecord.due_date.asc()).all()

    @staticmethod
    def list_due_between(start: datetime, end: datetime):
        return BorrowRecord.query.filter(
            BorrowRecord.status == fines.ACTIVE,
            BorrowRecord.due_date >= start,
            BorrowRecord.due_date <= end
        ).order_by(BorrowRecord.due_date.asc()).all()

    @staticmethod
    def count(status: str | None = None) -> int:
        query = BorrowRecord.query
        if status:
            query = query.filter_by(status=status)
        return query.count()

    @staticmethod
    def monthly_counts(months: int = 12):
        year = extract("year", BorrowRecord.borrow_date)
        month = extract("month", BorrowRecord.borrow_date)
        return (
            db.session.query(year.label("year"), month.label("month"), func.count(BorrowRecord.id))
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
            .limit(months)
            .all()
        )
