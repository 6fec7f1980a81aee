import click
from flask import Flask, jsonify
from circulation.config import Config
from circulation.extensions import db, migrate
from circulation.errors import register_error_handlers
from circulation.db_objects import ensure_db_objects


def create_app(config_object=Config, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # 1) Modeller (relationship string'leri çözülsün diye db init öncesi)
    import circulation.models.author  # noqa: F401
    import circulation.models.book  # noqa: F401
    import circulation.models.user  # noqa: F401
    import circulation.models.borrow  # noqa: F401

    # 2) db init, sonra dialect'e özel DB ayarları (db.engine için şart)
    db.init_app(app)
    ensure_db_objects(app)
    migrate.init_app(app, db)

    # 3) Ödünç motoru: tek instance, saat enjekte edilebilir
    from circulation.services.borrow_service import BorrowService
    app.extensions["borrow_service"] = BorrowService.from_config(app.config, clock=clock)

    # 4) Blueprint + hata eşlemesi
    from circulation.controllers.borrow_controller import borrow_bp
    app.register_blueprint(borrow_bp, url_prefix="/api")
    register_error_handlers(app)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.cli.command("sweep-overdue")
    def sweep_overdue_command():
        """Süresi geçmiş active kayıtları overdue yapar."""
        changed = app.extensions["borrow_service"].sweep()
        click.echo(f"{changed} borrow record(s) marked overdue")

    # Scheduler (opsiyonel periyodik sweep)
    from circulation.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app
