# circulation/db_objects.py
from sqlalchemy import event
from circulation.extensions import db


def _install_sqlite_locking(engine):
    """
    pysqlite varsayılanı BEGIN'i ilk DML'e kadar geciktirir; bu durumda iki
    borrow aynı anda available=True okuyabilir. Driver'ın transaction
    yönetimini kapatıp her transaction'ı BEGIN IMMEDIATE ile açıyoruz:
    yazıcılar sıraya girer, precondition okumaları yazımla tutarlı olur.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def ensure_db_objects(app):
    with app.app_context():
        engine = db.engine
        dialect = engine.dialect.name

        if dialect == "sqlite":
            _install_sqlite_locking(engine)
            app.logger.info("[db_objects] SQLite: BEGIN IMMEDIATE + foreign_keys ensure edildi.")
        else:
            # MSSQL/Postgres: satır kilidi with_for_update() ile, açık ödünç tekilliği
            # uq_borrow_records_open_book filtered index'i ile (migration'da)
            app.logger.info(f"[db_objects] {dialect}: ek DB objesi gerekmiyor.")
