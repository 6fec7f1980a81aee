from flask import Blueprint, request, jsonify

from circulation import errors
from circulation.errors import BorrowError, ValidationError
from circulation.services.borrow_service import get_borrow_service
from circulation.utils.dates import parse_datetime, iso

borrow_bp = Blueprint("borrow", __name__)


# -----------------------------
# Helpers
# -----------------------------
def _int(value, name: str) -> int:
    # JSON true -> 1, 1.9 -> 1 olmasın
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def _optional_int(value, name: str):
    if value is None or value == "":
        return None
    return _int(value, name)


def _datetime(value, name: str):
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def _status(value):
    if not value:
        return None
    if value not in ("active", "returned", "overdue", "lost"):
        raise ValidationError("status must be one of active, returned, overdue, lost")
    return value


def _borrow_to_dict(b, now):
    return {
        "id": b.id,
        "user_id": b.user_id,
        "book_id": b.book_id,
        "user": {
            "id": b.user.id,
            "name": b.user.name,
            "email": b.user.email,
            "library_card": b.user.library_card,
        } if b.user else None,
        "book": {
            "id": b.book.id,
            "title": b.book.title,
            "isbn": b.book.isbn,
        } if b.book else None,
        "borrow_date": iso(b.borrow_date),
        "due_date": iso(b.due_date),
        "return_date": iso(b.return_date),
        "status": b.status,
        "renewal_count": b.renewal_count,
        "fine_amount": b.fine_amount,
        "fine_paid": bool(b.fine_paid),
        "notes": b.notes,
        "days_borrowed": b.days_borrowed(now),
        "days_overdue": b.days_overdue(now),
        "calculated_fine": b.calculated_fine(now),
    }


def _ok(data, code=200, **extra):
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), code


# -----------------------------
# Borrow / return
# -----------------------------
@borrow_bp.post("/borrow")
def borrow_book():
    data = request.get_json(silent=True) or {}
    if "user_id" not in data or "book_id" not in data:
        raise ValidationError("user_id ve book_id zorunlu")

    user_id = _int(data["user_id"], "user_id")
    book_id = _int(data["book_id"], "book_id")
    due_date = _datetime(data["due_date"], "due_date") if data.get("due_date") else None
    notes = data.get("notes")
    if notes is not None and (not isinstance(notes, str) or len(notes) > 500):
        raise ValidationError("notes must be a string of at most 500 characters")

    service = get_borrow_service()
    b = service.borrow_book(user_id, book_id, due_date=due_date, notes=notes)
    return _ok(_borrow_to_dict(b, service.now()), 201, message="Book borrowed successfully")


@borrow_bp.post("/return")
def return_book():
    data = request.get_json(silent=True) or {}
    if "borrow_id" not in data:
        raise ValidationError("borrow_id zorunlu")

    service = get_borrow_service()
    b = service.return_book(_int(data["borrow_id"], "borrow_id"))
    return _ok(_borrow_to_dict(b, service.now()), message="Book returned successfully")


# -----------------------------
# Borrow records
# -----------------------------
@borrow_bp.get("/borrow-records")
def list_borrow_records():
    args = request.args
    service = get_borrow_service()
    records, pagination = service.find_all(
        user_id=_optional_int(args.get("user_id"), "user_id"),
        book_id=_optional_int(args.get("book_id"), "book_id"),
        status=_status(args.get("status")),
        page=_optional_int(args.get("page"), "page"),
        limit=_optional_int(args.get("limit"), "limit"),
        sort=args.get("sort") or None,
    )
    now = service.now()
    return _ok([_borrow_to_dict(b, now) for b in records], pagination=pagination)


@borrow_bp.get("/borrow-records/<int:borrow_id>")
def get_borrow_record(borrow_id: int):
    service = get_borrow_service()
    b = service.find_by_id(borrow_id)
    if not b:
        raise BorrowError(errors.BORROW_NOT_FOUND, "Borrow record not found")
    return _ok(_borrow_to_dict(b, service.now()))


@borrow_bp.patch("/borrow-records/<int:borrow_id>/extend")
def extend_due_date(borrow_id: int):
    data = request.get_json(silent=True) or {}
    if not data.get("due_date"):
        raise ValidationError("due_date zorunlu")

    service = get_borrow_service()
    b = service.extend_due_date(borrow_id, _datetime(data["due_date"], "due_date"))
    return _ok(_borrow_to_dict(b, service.now()), message="Due date extended successfully")


@borrow_bp.post("/borrow-records/<int:borrow_id>/renew")
def renew(borrow_id: int):
    service = get_borrow_service()
    b = service.renew(borrow_id)
    return _ok(_borrow_to_dict(b, service.now()), message="Borrow renewed successfully")


@borrow_bp.post("/borrow-records/<int:borrow_id>/lost")
def mark_lost(borrow_id: int):
    service = get_borrow_service()
    b = service.mark_lost(borrow_id)
    return _ok(_borrow_to_dict(b, service.now()), message="Book marked as lost")


@borrow_bp.get("/users/<int:user_id>/borrow-history")
def user_borrow_history(user_id: int):
    service = get_borrow_service()
    now = service.now()
    return _ok([_borrow_to_dict(b, now) for b in service.get_user_borrow_history(user_id)])


@borrow_bp.get("/books/<int:book_id>/borrow-history")
def book_borrow_history(book_id: int):
    service = get_borrow_service()
    now = service.now()
    return _ok([_borrow_to_dict(b, now) for b in service.get_book_borrow_history(book_id)])


# -----------------------------
# Reports
# -----------------------------
@borrow_bp.get("/overdue-books")
def overdue_books():
    service = get_borrow_service()
    now = service.now()
    return _ok([_borrow_to_dict(b, now) for b in service.get_overdue()])


@borrow_bp.get("/due-soon")
def due_soon():
    service = get_borrow_service()
    days = _optional_int(request.args.get("days"), "days")
    if days is not None and days < 0:
        raise ValidationError("days must be >= 0")
    now = service.now()
    return _ok([_borrow_to_dict(b, now) for b in service.get_due_soon(days)])


@borrow_bp.get("/borrow-stats")
def borrow_stats():
    return _ok(get_borrow_service().get_stats())
