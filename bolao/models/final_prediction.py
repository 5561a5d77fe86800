from datetime import datetime, timezone

from bolao import db


class FinalPrediction(db.Model):
    __tablename__ = "final_predictions"

    id = db.Column(db.Integer, primary_key=True)

    # At most one per user
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True
    )

    champion_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    runner_up_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    third_place_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    fourth_place_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Predicted score of the final match
    final_home_score = db.Column(db.Integer)
    final_away_score = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<FinalPrediction user_id={self.user_id}>"

    @staticmethod
    def submit(
        user_id,
        champion_id,
        runner_up_id,
        third_place_id,
        fourth_place_id,
        final_home_score=None,
        final_away_score=None,
    ):
        """Create or update the user's tournament-final guess.

        Returns (prediction, message); prediction is None when rejected.
        """
        from .tournament_result import TournamentResult

        result = TournamentResult.get_current()
        if result and result.is_completed:
            return None, "Tournament is already finished"

        placements = [champion_id, runner_up_id, third_place_id, fourth_place_id]
        if None in placements or len(set(placements)) != 4:
            return None, "Champion, runner-up, third and fourth must be four different teams"

        for goals in (final_home_score, final_away_score):
            if goals is not None and (
                not isinstance(goals, int) or isinstance(goals, bool) or goals < 0
            ):
                return None, "Scores must be non-negative integers"

        prediction = FinalPrediction.query.filter_by(user_id=user_id).first()
        message = "Prediction updated successfully"

        if not prediction:
            prediction = FinalPrediction(user_id=user_id)
            db.session.add(prediction)
            message = "Prediction created successfully"

        prediction.champion_id = champion_id
        prediction.runner_up_id = runner_up_id
        prediction.third_place_id = third_place_id
        prediction.fourth_place_id = fourth_place_id
        prediction.final_home_score = final_home_score
        prediction.final_away_score = final_away_score
        return prediction, message

    def to_dict(self):
        """Convert prediction to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "champion_id": self.champion_id,
            "runner_up_id": self.runner_up_id,
            "third_place_id": self.third_place_id,
            "fourth_place_id": self.fourth_place_id,
            "final_home_score": self.final_home_score,
            "final_away_score": self.final_away_score,
        }
