from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from db import Base


class ShopifySession(Base):
    __tablename__ = "shopify_sessions"

    id = Column(String, primary_key=True)
    shop = Column(String, nullable=False, index=True)
    state = Column(String, nullable=False, default="")
    is_online = Column(Boolean, nullable=False, default=False)
    scope = Column(String, nullable=True)
    expires = Column(DateTime(timezone=True), nullable=True)
    access_token = Column(String, nullable=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires is None:
            return False
        expires = self.expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires <= (now or datetime.now(timezone.utc))

    def is_scope_changed(self, scopes: list[str]) -> bool:
        granted = {s.strip() for s in (self.scope or "").split(",") if s.strip()}
        # write_x implies read_x
        granted |= {"read_" + s[len("write_"):] for s in granted if s.startswith("write_")}
        return not set(scopes).issubset(granted)

    def is_active(self, scopes: list[str]) -> bool:
        return bool(self.access_token) and not self.is_expired() and not self.is_scope_changed(scopes)

    def __repr__(self) -> str:
        return f"ShopifySession(id={self.id!r}, shop={self.shop!r}, is_online={self.is_online!r})"
