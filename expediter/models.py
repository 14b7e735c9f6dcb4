from datetime import datetime

from expediter import db


class StoreEntry(db.Model):
    """One key of the durable key-value medium.

    Collections (``clients``, ``permits`` ...) are stored whole as a JSON list
    under their key; counters (``permitCounter``, ``permitYear`` ...) as
    scalars.
    """
    __tablename__ = 'store_entry'
    key        = db.Column(db.String(64), primary_key=True)
    value      = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)
