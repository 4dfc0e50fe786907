from __future__ import annotations

import json

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Setting(db.Model):
    """
    Global key-value settings.

    value is stored JSON-encoded so numbers and strings round-trip with their
    type. Keys read by the financial engine: initial_capital, delivery_fee.
    """
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value = db.Column(db.Text, nullable=True)
    description = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def decoded_value(self):
        if self.value is None:
            return None
        try:
            return json.loads(self.value)
        except ValueError:
            # Hand-edited rows may hold bare text
            return self.value

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "value": self.decoded_value,
            "description": self.description,
            "updated_at": to_utc_z(self.updated_at),
        }
