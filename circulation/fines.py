# circulation/fines.py
"""
Gecikme / ceza hesapları. Hepsi saf fonksiyon: saklanan alanlar + 'now' alır,
DB'ye dokunmaz. Kısmi gün tam gün sayılır (12 saat gecikme = 1 gün).
"""
from datetime import datetime, timedelta

DAILY_FINE = 50    # para biriminin küçük birimi cinsinden
MAX_FINE = 5000    # borrow_records CHECK constraint ile aynı
LOST_FINE = 2000

ACTIVE = "active"
RETURNED = "returned"
OVERDUE = "overdue"
LOST = "lost"

OPEN_STATUSES = (ACTIVE, OVERDUE)
CLOSED_STATUSES = (RETURNED, LOST)

_ONE_DAY = timedelta(days=1)


def ceil_days(delta: timedelta) -> int:
    days, rest = divmod(delta, _ONE_DAY)
    return days + (1 if rest else 0)


def days_borrowed(borrow_date: datetime, return_date: datetime | None, now: datetime) -> int:
    end = return_date or now
    return ceil_days(abs(end - borrow_date))


def days_overdue(status: str, due_date: datetime, now: datetime) -> int:
    if status in CLOSED_STATUSES:
        return 0
    if now <= due_date:
        return 0
    return ceil_days(now - due_date)


def calculated_fine(overdue_days: int) -> int:
    if overdue_days <= 0:
        return 0
    return min(overdue_days * DAILY_FINE, MAX_FINE)


def current_fine(status: str, due_date: datetime, now: datetime) -> int:
    """Kayıp kitapta sabit ceza günlük hesabı ezer."""
    if status == LOST:
        return LOST_FINE
    return calculated_fine(days_overdue(status, due_date, now))


def effective_status(status: str, due_date: datetime, now: datetime) -> str:
    # sweep şu an çalışsaydı kayıt hangi durumda olurdu
    if status == ACTIVE and due_date < now:
        return OVERDUE
    return status
