from contextlib import contextmanager
from typing import Iterator
import logging

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import settings
from .errors import Conflict, UpstreamFailure

logger = logging.getLogger("yummio.db")


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def make_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    eng = create_engine(url, echo=False, **kwargs)
    if url.startswith("sqlite"):
        # claves foráneas y lower() Unicode se configuran por conexión
        @event.listens_for(eng, "connect")
        def _fk_on(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
            # lower() nativo de SQLite sólo pliega ASCII
            dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)
    return eng


engine = make_engine(settings.db_url)


def init_db(bind=None) -> None:
    # importa las tablas para registrarlas en el metadata
    from . import models_db  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session() -> Iterator[Session]:
    # Desactiva la expiración de atributos tras commit (evita {} en respuestas)
    with Session(engine, expire_on_commit=False) as session:
        yield session


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Unidad atómica: confirma si el bloque termina bien y deshace todo ante cualquier excepción.
    Los errores del motor se traducen a la taxonomía de dominio; nunca escapan crudos.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Integrity violation, transaction rolled back: %s", exc.orig)
        raise Conflict("conflicting write, resource already exists") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Persistence failure, transaction rolled back: %s", exc)
        raise UpstreamFailure("persistence transaction failed") from exc
    except Exception:
        session.rollback()
        raise
