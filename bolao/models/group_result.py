from datetime import datetime, timezone

from bolao import db


class GroupResult(db.Model):
    __tablename__ = "group_results"

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(
        db.Integer, db.ForeignKey("groups.id"), nullable=False, unique=True
    )

    first_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    second_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"))

    is_completed = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    first_team = db.relationship("Team", foreign_keys=[first_team_id])
    second_team = db.relationship("Team", foreign_keys=[second_team_id])

    def __repr__(self):
        return f"<GroupResult group_id={self.group_id} completed={self.is_completed}>"

    def to_dict(self):
        """Convert group result to dictionary for API responses"""
        return {
            "group_id": self.group_id,
            "first_team_id": self.first_team_id,
            "second_team_id": self.second_team_id,
            "is_completed": self.is_completed,
        }
