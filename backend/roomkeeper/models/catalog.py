from __future__ import annotations

from ..extensions import db


class Product(db.Model):
    """
    Time package sold at the kiosk (1 hour, 2 hours, day pass...).

    Read-only from the session lifecycle's point of view.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(100), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Product {self.code} {self.duration_minutes}min>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "price": self.price,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
        }
