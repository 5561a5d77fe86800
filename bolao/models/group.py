from datetime import datetime, timezone

from bolao import db


class Group(db.Model):
    __tablename__ = "groups"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(20), unique=True, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    teams = db.relationship("Team", backref="group", lazy="dynamic")
    predictions = db.relationship(
        "GroupPrediction", backref="group", lazy="dynamic", cascade="all, delete-orphan"
    )
    result = db.relationship(
        "GroupResult", backref="group", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Group {self.name}>"

    @property
    def is_completed(self):
        """True once the admin has finalized the classification"""
        return bool(self.result and self.result.is_completed)

    def to_dict(self, include_teams=False):
        """Convert group to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "is_completed": self.is_completed,
            "result": self.result.to_dict() if self.result else None,
        }

        if include_teams:
            from .team import Team

            data["teams"] = [team.to_dict() for team in self.teams.order_by(Team.name)]

        return data
