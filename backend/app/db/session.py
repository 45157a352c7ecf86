from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from backend.app.core.settings import settings


ENGINE = create_engine(settings.database_url, future=True, echo=False, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=ENGINE, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False)

SessionScope = Callable[[], ContextManager[Session]]


def scope_for(factory: sessionmaker) -> SessionScope:
    """Build a commit-or-rollback session scope bound to ``factory``."""

    @contextmanager
    def _scope() -> Iterator[Session]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _scope


session_scope = scope_for(SessionLocal)
