from datetime import datetime, timezone

from bolao import db


class GroupPrediction(db.Model):
    __tablename__ = "group_predictions"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False)

    predicted_first_team_id = db.Column(
        db.Integer, db.ForeignKey("teams.id"), nullable=False
    )
    predicted_second_team_id = db.Column(
        db.Integer, db.ForeignKey("teams.id"), nullable=False
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    predicted_first_team = db.relationship(
        "Team", foreign_keys=[predicted_first_team_id]
    )
    predicted_second_team = db.relationship(
        "Team", foreign_keys=[predicted_second_team_id]
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "group_id", name="unique_user_group_prediction"),
        db.Index("idx_group_prediction_group", "group_id"),
    )

    def __repr__(self):
        return f"<GroupPrediction user_id={self.user_id} group_id={self.group_id}>"

    @staticmethod
    def submit(user_id, group_id, first_team_id, second_team_id):
        """Create or update a user's classification guess for a group.

        Returns (prediction, message); prediction is None when rejected.
        """
        from .group import Group

        group = db.session.get(Group, group_id)
        if not group:
            return None, "Group not found"

        if group.is_completed:
            return None, "Group classification is already final"

        if first_team_id == second_team_id:
            return None, "First and second place must be different teams"

        prediction = GroupPrediction.query.filter_by(
            user_id=user_id, group_id=group_id
        ).first()

        if prediction:
            prediction.predicted_first_team_id = first_team_id
            prediction.predicted_second_team_id = second_team_id
            return prediction, "Prediction updated successfully"

        prediction = GroupPrediction(
            user_id=user_id,
            group_id=group_id,
            predicted_first_team_id=first_team_id,
            predicted_second_team_id=second_team_id,
        )
        db.session.add(prediction)
        return prediction, "Prediction created successfully"

    def to_dict(self):
        """Convert prediction to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "group_id": self.group_id,
            "predicted_first_team_id": self.predicted_first_team_id,
            "predicted_second_team_id": self.predicted_second_team_id,
        }
