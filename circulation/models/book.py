from datetime import datetime
from circulation.extensions import db

class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("authors.id"), nullable=True, index=True)
    isbn = db.Column(db.String(32), unique=True, nullable=True, index=True)
    genre = db.Column(db.String(50), nullable=True)

    # sadece BorrowService yazar (borrow/return/lost transaction'ları)
    available = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    author = db.relationship("Author", backref="books")
