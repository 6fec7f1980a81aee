# MSSQL'de FOR UPDATE derlenmez; satır kilidi tablo hint'i ile alınır
MSSQL_ROW_LOCK = "WITH (UPDLOCK, ROWLOCK)"


def for_update(query, model):
    """
    Okunan satırı transaction sonuna kadar kilitler.
    Postgres/MySQL: SELECT ... FOR UPDATE, MSSQL: FROM t WITH (UPDLOCK, ROWLOCK).
    SQLite ikisini de yok sayar; orada BEGIN IMMEDIATE yazıcıları sıraya sokar.
    """
    return query.with_for_update().with_hint(model.__table__, MSSQL_ROW_LOCK, "mssql")
