# circulation/services/unit_of_work.py
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session

from circulation.extensions import db
from circulation.errors import TransactionError


class UnitOfWork:
    """
    Ledger + katalog yazımları için tek transaction sınırı.

        with UnitOfWork(op="borrow") as uow:
            BorrowRepo.create(record)
            BookRepo.mark_unavailable(book_id)

    - Blok hatasız biterse tek commit.
    - Her exception'da (iptal dahil: KeyboardInterrupt, GeneratorExit...) rollback.
    - SQLAlchemyError -> TransactionError; domain hataları olduğu gibi yukarı gider.
    - Retry yok; çağıran karar verir.
    """

    def __init__(self, op: str = "unit_of_work", session=None):
        self.op = op
        self.session = session or db.session

    def __enter__(self):
        # db.session bir scoped_session; in_transaction gerçek Session üzerinde
        session = self.session() if isinstance(self.session, scoped_session) else self.session

        # önceki okumalardan kalma açık transaction varsa taze snapshot ile başla
        if session.in_transaction() and not (session.new or session.dirty or session.deleted):
            session.commit()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            try:
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                current_app.logger.error(f"[{self.op}] commit başarısız, rollback yapıldı: {e}")
                raise TransactionError(f"Transaction failed during {self.op}") from e
            return False

        self.session.rollback()
        if isinstance(exc, SQLAlchemyError):
            current_app.logger.error(f"[{self.op}] storage hatası, rollback yapıldı: {exc}")
            raise TransactionError(f"Transaction failed during {self.op}") from exc
        return False
