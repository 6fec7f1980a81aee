from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from circulation import errors, fines
from circulation.clock import SystemClock
from circulation.errors import BorrowError
from circulation.models.borrow import BorrowRecord
from circulation.repositories.book_repo import BookRepo
from circulation.repositories.borrow_repo import BorrowRepo
from circulation.repositories.user_repo import UserRepo
from circulation.services.unit_of_work import UnitOfWork
from circulation.tasks.overdue_sweep import sweep_overdue


def get_borrow_service() -> "BorrowService":
    return current_app.extensions["borrow_service"]


class BorrowService:
    """
    Ödünç yaşam döngüsü: borrow / return / extend / renew / lost.

    Book.available ile BorrowRecord.status birlikte değişir; her yazma
    işlemi tek UnitOfWork içinde commit ya da rollback olur. Okuma
    yollarından önce sweep çalışır (status sadece sweep'ten hemen sonra
    kesin doğrudur).
    """

    def __init__(
        self,
        clock=None,
        max_active_borrows: int = 5,
        loan_period_days: int = 14,
        renewal_days: int = 14,
        max_renewals: int = 3,
        due_soon_days: int = 3,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ):
        self.clock = clock or SystemClock()
        self.max_active_borrows = max_active_borrows
        self.loan_period_days = loan_period_days
        self.renewal_days = renewal_days
        self.max_renewals = max_renewals
        self.due_soon_days = due_soon_days
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    @classmethod
    def from_config(cls, config, clock=None):
        return cls(
            clock=clock,
            max_active_borrows=config["MAX_ACTIVE_BORROWS"],
            loan_period_days=config["LOAN_PERIOD_DAYS"],
            renewal_days=config["RENEWAL_DAYS"],
            max_renewals=config["MAX_RENEWALS"],
            due_soon_days=config["DUE_SOON_DAYS"],
            default_page_size=config["DEFAULT_PAGE_SIZE"],
            max_page_size=config["MAX_PAGE_SIZE"],
        )

    def now(self) -> datetime:
        return self.clock.now()

    # -----------------------------
    # Write paths
    # -----------------------------
    def borrow_book(self, user_id: int, book_id: int, due_date: datetime | None = None, notes: str | None = None):
        now = self.now()

        with UnitOfWork(op="borrow"):
            # kullanıcı satırı kilitli: limit sayımı commit'e kadar geçerli kalır
            user = UserRepo.get_for_update(user_id)
            if not user:
                raise BorrowError(errors.USER_NOT_FOUND, "User not found")
            if not user.is_active_member:
                raise BorrowError(errors.USER_NOT_ACTIVE, "User account is not active")

            if BorrowRepo.count_open_by_user(user_id) >= self.max_active_borrows:
                raise BorrowError(errors.BORROW_LIMIT_REACHED, "User has reached maximum borrow limit")

            book = BookRepo.get_for_update(book_id)
            if not book:
                raise BorrowError(errors.BOOK_NOT_FOUND, "Book not found")

            held_by_user = BorrowRepo.find_open_by_user_and_book(user_id, book_id)
            if not book.available:
                if held_by_user:
                    raise BorrowError(errors.ALREADY_BORROWED, "User has already borrowed this book")
                raise BorrowError(errors.BOOK_NOT_AVAILABLE, "Book is not available for borrowing")
            if held_by_user:
                raise BorrowError(errors.ALREADY_BORROWED, "User has already borrowed this book")

            if due_date is None or due_date <= now:
                due_date = now + timedelta(days=self.loan_period_days)

            record = BorrowRecord(
                user_id=user_id,
                book_id=book_id,
                borrow_date=now,
                due_date=due_date,
                status=fines.ACTIVE,
                renewal_count=0,
                fine_amount=0,
                fine_paid=False,
                notes=notes,
            )
            try:
                BorrowRepo.create(record)
            except IntegrityError as e:
                # açık ödünç unique index'i: paralel bir borrow önce davrandı
                raise BorrowError(errors.BOOK_NOT_AVAILABLE, "Book is not available for borrowing") from e

            if not BookRepo.mark_unavailable(book_id):
                raise BorrowError(errors.BOOK_NOT_AVAILABLE, "Book is not available for borrowing")

        current_app.logger.info(
            f"[borrow] borrow_id={record.id} user_id={user_id} book_id={book_id} due_date={due_date.isoformat()}"
        )
        return record

    def return_book(self, borrow_id: int):
        now = self.now()

        with UnitOfWork(op="return"):
            record = BorrowRepo.get_for_update(borrow_id)
            if not record:
                raise BorrowError(errors.BORROW_NOT_FOUND, "Borrow record not found")
            if record.status == fines.RETURNED:
                raise BorrowError(errors.ALREADY_RETURNED, "Book has already been returned")
            if record.status == fines.LOST:
                raise BorrowError(errors.NOT_ACTIVE, "Borrow record is marked as lost")

            # iade anındaki ceza dondurulur (ödenmişse dokunma)
            if not record.fine_paid:
                record.fine_amount = fines.current_fine(record.status, record.due_date, now)

            record.status = fines.RETURNED
            record.return_date = now
            book_id = record.book_id

            BookRepo.mark_available(book_id)

        current_app.logger.info(f"[borrow] return borrow_id={borrow_id} book_id={book_id}")
        return record

    def extend_due_date(self, borrow_id: int, new_due_date: datetime):
        now = self.now()

        with UnitOfWork(op="extend"):
            record = BorrowRepo.get_for_update(borrow_id)
            if not record:
                raise BorrowError(errors.BORROW_NOT_FOUND, "Borrow record not found")
            if record.status in fines.CLOSED_STATUSES:
                raise BorrowError(errors.BOOK_RETURNED, "Cannot extend due date for returned book")
            if new_due_date <= now:
                raise BorrowError(errors.INVALID_DUE_DATE, "New due date must be in the future")

            record.due_date = new_due_date
            if record.status == fines.OVERDUE:
                record.status = fines.ACTIVE
                # gecikme kalktı: ödenmemiş cezayı sıfırla
                if not record.fine_paid:
                    record.fine_amount = 0

        current_app.logger.info(f"[borrow] extend borrow_id={borrow_id} due_date={new_due_date.isoformat()}")
        return record

    def renew(self, borrow_id: int):
        now = self.now()

        with UnitOfWork(op="renew"):
            record = BorrowRepo.get_for_update(borrow_id)
            if not record:
                raise BorrowError(errors.BORROW_NOT_FOUND, "Borrow record not found")
            if record.renewal_count >= self.max_renewals:
                raise BorrowError(errors.RENEWAL_LIMIT, "Maximum renewal limit reached")
            if fines.effective_status(record.status, record.due_date, now) != fines.ACTIVE:
                raise BorrowError(errors.NOT_ACTIVE, "Only active borrows can be renewed")

            record.due_date = record.due_date + timedelta(days=self.renewal_days)
            record.renewal_count += 1

        current_app.logger.info(f"[borrow] renew borrow_id={borrow_id} renewal_count={record.renewal_count}")
        return record

    def mark_lost(self, borrow_id: int):
        with UnitOfWork(op="lost"):
            record = BorrowRepo.get_for_update(borrow_id)
            if not record:
                raise BorrowError(errors.BORROW_NOT_FOUND, "Borrow record not found")
            if not record.is_open:
                raise BorrowError(errors.NOT_ACTIVE, "Only borrowed books can be marked as lost")

            record.status = fines.LOST
            record.fine_amount = fines.LOST_FINE
            book_id = record.book_id

            # açık ödünç kalmadı -> kitap tekrar available
            BookRepo.mark_available(book_id)

        current_app.logger.warning(f"[borrow] lost borrow_id={borrow_id} book_id={book_id}")
        return record

    def sweep(self) -> int:
        return sweep_overdue(self.now())

    # -----------------------------
    # Read paths
    # -----------------------------
    def find_by_id(self, borrow_id: int):
        return BorrowRepo.get(borrow_id)

    def find_all(self, user_id=None, book_id=None, status=None, page=1, limit=None, sort=None):
        self.sweep()

        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else self.default_page_size
        limit = min(limit, self.max_page_size)

        result = BorrowRepo.paginate(
            user_id=user_id,
            book_id=book_id,
            status=status,
            sort=sort or "-borrow_date",
            page=page,
            per_page=limit,
        )
        pagination = {
            "current_page": page,
            "total_pages": result.pages,
            "total_items": result.total,
            "items_per_page": limit,
            "has_next": result.has_next,
            "has_prev": page > 1,
        }
        return result.items, pagination

    def get_user_borrow_history(self, user_id: int):
        return BorrowRepo.list_by_user(user_id)

    def get_book_borrow_history(self, book_id: int):
        return BorrowRepo.list_by_book(book_id)

    def get_overdue(self):
        self.sweep()
        return BorrowRepo.list_overdue()

    def get_due_soon(self, days: int | None = None):
        self.sweep()
        now = self.now()
        days = self.due_soon_days if days is None else days
        return BorrowRepo.list_due_between(now, now + timedelta(days=days))

    def get_stats(self) -> dict:
        self.sweep()

        monthly = {}
        for year, month, count in BorrowRepo.monthly_counts(12):
            monthly[f"{int(year)}-{int(month):02d}"] = int(count)

        return {
            "total_borrows": BorrowRepo.count(),
            "active_borrows": BorrowRepo.count(fines.ACTIVE),
            "returned_borrows": BorrowRepo.count(fines.RETURNED),
            "overdue_borrows": BorrowRepo.count(fines.OVERDUE),
            "lost_borrows": BorrowRepo.count(fines.LOST),
            "monthly_borrows": monthly,
        }
