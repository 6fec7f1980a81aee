# circulation/tasks/overdue_sweep.py
from datetime import datetime
from flask import current_app

from circulation import fines
from circulation.repositories.borrow_repo import BorrowRepo
from circulation.services.unit_of_work import UnitOfWork


def sweep_overdue(now: datetime) -> int:
    """
    Süresi geçmiş active kayıtları overdue yapar, ödenmemiş overdue
    cezalarını günceller. Tek commit. İkinci kez çalıştırmak overdue
    kümesini değiştirmez.

    Returns: bu çalıştırmada overdue'ya geçen kayıt sayısı
    """
    with UnitOfWork(op="sweep"):
        stale = BorrowRepo.find_stale_active(now)
        for b in stale:
            b.status = fines.OVERDUE

        # ödenmişse elleme
        fine_changed = 0
        for b in BorrowRepo.find_unpaid_overdue():
            amount = fines.current_fine(b.status, b.due_date, now)
            if b.fine_amount != amount:
                b.fine_amount = amount
                fine_changed += 1

    if stale or fine_changed:
        current_app.logger.info(f"[sweep] overdue={len(stale)} fine_changed={fine_changed}")
    return len(stale)


def run_overdue_sweep_job(app):
    with app.app_context():
        try:
            service = app.extensions["borrow_service"]
            service.sweep()
        except Exception as e:
            current_app.logger.exception(f"[sweep] Hata: {e}")
