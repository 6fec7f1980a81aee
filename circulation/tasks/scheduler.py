# circulation/tasks/scheduler.py
from __future__ import annotations

import atexit
import os


def start_scheduler(app):
    """
    Opsiyonel periyodik sweep. SWEEP_INTERVAL_MINUTES=0 (varsayılan) ise
    hiç başlamaz; sweep zaten okuma yollarında çalışıyor.
    - Debug reloader'da çift çalışmayı engeller.
    - Uygulama kapanırken scheduler'ı kapatır.
    """
    minutes = int(app.config.get("SWEEP_INTERVAL_MINUTES") or 0)
    if minutes <= 0 or app.testing:
        return None

    # Werkzeug reloader varsa WERKZEUG_RUN_MAIN=true olan process gerçek process'tir.
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        app.logger.info("[scheduler] Debug reloader secondary process: scheduler skipped.")
        return None

    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    from circulation.tasks.overdue_sweep import run_overdue_sweep_job

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        func=run_overdue_sweep_job,
        args=[app],
        trigger=IntervalTrigger(minutes=minutes),
        id="overdue_sweep_job",
        replace_existing=True,
        max_instances=1,        # aynı job üst üste binmesin
        coalesce=True,          # kaçırılanları tek seferde toparla
        misfire_grace_time=120
    )
    scheduler.start()
    app.logger.info(f"[scheduler] Overdue sweep job started (every {minutes} minutes).")

    app.extensions["apscheduler"] = scheduler

    def _shutdown():
        if scheduler.running:
            scheduler.shutdown(wait=False)

    atexit.register(_shutdown)
    return scheduler
