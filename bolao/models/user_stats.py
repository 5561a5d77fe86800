from datetime import datetime, timezone

from bolao import db


class UserStats(db.Model):
    """Per-user totals derived from the ledger. Never edited by hand."""

    __tablename__ = "user_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True
    )

    total_points = db.Column(db.Integer, nullable=False, default=0)
    matches_played = db.Column(db.Integer, nullable=False, default=0)
    accuracy_percentage = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<UserStats user_id={self.user_id} {self.total_points}pts>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "total_points": self.total_points,
            "matches_played": self.matches_played,
            "accuracy_percentage": self.accuracy_percentage,
        }
