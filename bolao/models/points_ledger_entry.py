from datetime import datetime, timezone

from bolao import db


class PointsLedgerEntry(db.Model):
    """Points awarded for one prediction.

    ``prediction_id`` points into the table named by ``category`` so the
    pair is the natural key. ``related_id`` is the scored subject (match id,
    group id or tournament result id).
    """

    __tablename__ = "user_points"

    CATEGORY_MATCH = "match"
    CATEGORY_GROUP = "group_classification"
    CATEGORY_FINAL = "tournament_final"
    CATEGORIES = (CATEGORY_MATCH, CATEGORY_GROUP, CATEGORY_FINAL)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    points = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(30), nullable=False)
    prediction_id = db.Column(db.Integer, nullable=False)
    related_id = db.Column(db.Integer, nullable=False)
    points_type = db.Column(db.String(30), nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "category", "prediction_id", name="unique_ledger_prediction"
        ),
        db.Index("idx_ledger_user", "user_id"),
        db.Index("idx_ledger_subject", "category", "related_id"),
    )

    def __repr__(self):
        return (
            f"<PointsLedgerEntry user_id={self.user_id} {self.category}"
            f"#{self.prediction_id} {self.points}pts>"
        )

    def to_dict(self):
        """Convert ledger entry to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "points": self.points,
            "category": self.category,
            "prediction_id": self.prediction_id,
            "related_id": self.related_id,
            "points_type": self.points_type,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
