from datetime import datetime, timezone

from bolao import db


class TournamentResult(db.Model):
    """Final placements of the tournament. There is a single global row."""

    __tablename__ = "tournament_results"

    id = db.Column(db.Integer, primary_key=True)

    champion_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    runner_up_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    third_place_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    fourth_place_id = db.Column(db.Integer, db.ForeignKey("teams.id"))

    # Score of the final match
    final_home_score = db.Column(db.Integer)
    final_away_score = db.Column(db.Integer)

    is_completed = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<TournamentResult completed={self.is_completed}>"

    @staticmethod
    def get_current():
        """Return the tournament result row, or None if nothing was entered yet"""
        return TournamentResult.query.order_by(TournamentResult.id).first()

    @staticmethod
    def get_or_create():
        result = TournamentResult.get_current()
        if not result:
            result = TournamentResult()
            db.session.add(result)
        return result

    def to_dict(self):
        """Convert tournament result to dictionary for API responses"""
        return {
            "id": self.id,
            "champion_id": self.champion_id,
            "runner_up_id": self.runner_up_id,
            "third_place_id": self.third_place_id,
            "fourth_place_id": self.fourth_place_id,
            "final_home_score": self.final_home_score,
            "final_away_score": self.final_away_score,
            "is_completed": self.is_completed,
        }
