from circulation.models.book import Book
from circulation.repositories.locks import for_update

class BookRepo:
    @staticmethod
    def get_for_update(book_id: int):
        return for_update(Book.query.filter_by(id=book_id), Book).first()

    @staticmethod
    def mark_unavailable(book_id: int) -> bool:
        """
        Compare-and-swap: sadece available=True ise False yapar.
        return: satır güncellendi mi (False -> başka transaction kazandı)
        """
        updated = Book.query.filter_by(id=book_id, available=True).update({"available": False})
        return updated == 1

    @staticmethod
    def mark_available(book_id: int) -> bool:
        updated = Book.query.filter_by(id=book_id).update({"available": True})
        return updated == 1
