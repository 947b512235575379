# Overview: Flask extension instances shared by the custody models and services.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def enable_sqlite_savepoints(engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT issued
    after only SELECTs opens the outer transaction itself and its RELEASE
    commits everything. Folio claims and best-effort commits both rely on
    savepoints nested inside the request transaction.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")
