from datetime import datetime
from sqlalchemy import text
from circulation.extensions import db
from circulation import fines

_OPEN_FILTER = text("status IN ('active', 'overdue')")


class BorrowRecord(db.Model):
    __tablename__ = "borrow_records"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    borrow_date = db.Column(db.DateTime, nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)
    return_date = db.Column(db.DateTime, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=fines.ACTIVE)  # active/returned/overdue/lost
    renewal_count = db.Column(db.Integer, nullable=False, default=0)

    fine_amount = db.Column(db.Integer, nullable=False, default=0)
    fine_paid = db.Column(db.Boolean, nullable=False, default=False)  # ödeme tarafı set eder

    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref="borrow_records")
    book = db.relationship("Book", backref="borrow_records")

    __table_args__ = (
        # kitap başına tek availability flag var -> aynı anda en fazla bir açık ödünç
        db.Index(
            "uq_borrow_records_open_book",
            "book_id",
            unique=True,
            sqlite_where=_OPEN_FILTER,
            postgresql_where=_OPEN_FILTER,
            mssql_where=_OPEN_FILTER,
        ),
        db.Index("ix_borrow_records_user_status", "user_id", "status"),
        db.Index("ix_borrow_records_due_status", "due_date", "status"),
        db.CheckConstraint("due_date > borrow_date", name="ck_borrow_records_due_after_borrow"),
        db.CheckConstraint(
            "return_date IS NULL OR return_date >= borrow_date",
            name="ck_borrow_records_return_after_borrow",
        ),
        db.CheckConstraint("renewal_count >= 0 AND renewal_count <= 3", name="ck_borrow_records_renewals"),
        db.CheckConstraint("fine_amount >= 0 AND fine_amount <= 5000", name="ck_borrow_records_fine"),
        db.CheckConstraint(
            "status IN ('active', 'returned', 'overdue', 'lost')",
            name="ck_borrow_records_status",
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.status in fines.OPEN_STATUSES

    def days_borrowed(self, now: datetime) -> int:
        return fines.days_borrowed(self.borrow_date, self.return_date, now)

    def days_overdue(self, now: datetime) -> int:
        return fines.days_overdue(self.status, self.due_date, now)

    def calculated_fine(self, now: datetime) -> int:
        return fines.current_fine(self.status, self.due_date, now)
