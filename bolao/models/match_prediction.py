from datetime import datetime, timezone

from bolao import db


class MatchPrediction(db.Model):
    __tablename__ = "match_predictions"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Predicted score
    home_score = db.Column(db.Integer, nullable=False)
    away_score = db.Column(db.Integer, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_match_prediction_match", "match_id"),
    )

    def __repr__(self):
        return (
            f"<MatchPrediction user_id={self.user_id} match_id={self.match_id} "
            f"{self.home_score}x{self.away_score}>"
        )

    @staticmethod
    def submit(user_id, match_id, home_score, away_score):
        """Create or update a user's prediction for a match.

        Returns (prediction, message); prediction is None when rejected.
        The caller commits.
        """
        from .match import Match

        match = db.session.get(Match, match_id)
        if not match:
            return None, "Match not found"

        if not match.accepts_predictions():
            return None, "Match is already finished"

        for goals in (home_score, away_score):
            if not isinstance(goals, int) or isinstance(goals, bool) or goals < 0:
                return None, "Scores must be non-negative integers"

        prediction = MatchPrediction.query.filter_by(
            user_id=user_id, match_id=match_id
        ).first()

        if prediction:
            prediction.home_score = home_score
            prediction.away_score = away_score
            return prediction, "Prediction updated successfully"

        prediction = MatchPrediction(
            user_id=user_id,
            match_id=match_id,
            home_score=home_score,
            away_score=away_score,
        )
        db.session.add(prediction)
        return prediction, "Prediction created successfully"

    def to_dict(self):
        """Convert prediction to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "match_id": self.match_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
