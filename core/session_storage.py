import logging
from pathlib import Path
from typing import Iterable

from db import Base, make_engine, make_session_factory
from models import ShopifySession

logger = logging.getLogger(__name__)


class SessionStorage:
    """SQLite-backed store for Shopify sessions.

    Every call opens its own SQLAlchemy session, so one instance can be shared
    across concurrent requests.
    """

    def __init__(self, database_path: Path):
        self.database_path = Path(database_path)
        self.engine = make_engine(self.database_path)
        self.SessionLocal = make_session_factory(self.engine)

    def init_db(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Session storage ready at %s", self.database_path)

    def store_session(self, session: ShopifySession) -> bool:
        with self.SessionLocal() as db:
            db.merge(session)
            db.commit()
        return True

    def load_session(self, session_id: str) -> ShopifySession | None:
        with self.SessionLocal() as db:
            return db.get(ShopifySession, session_id)

    def delete_session(self, session_id: str) -> bool:
        with self.SessionLocal() as db:
            db.query(ShopifySession).filter(ShopifySession.id == session_id).delete()
            db.commit()
        return True

    def delete_sessions(self, session_ids: Iterable[str]) -> bool:
        ids = list(session_ids)
        if not ids:
            return True
        with self.SessionLocal() as db:
            db.query(ShopifySession).filter(ShopifySession.id.in_(ids)).delete(synchronize_session=False)
            db.commit()
        return True

    def find_sessions_by_shop(self, shop: str) -> list[ShopifySession]:
        with self.SessionLocal() as db:
            return db.query(ShopifySession).filter(ShopifySession.shop == shop).all()
