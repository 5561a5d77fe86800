from datetime import datetime, timezone

from bolao import db


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Teams (nullable until a knockout slot is decided)
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)

    # Match timing and context
    match_date = db.Column(db.DateTime, nullable=False)
    stage = db.Column(db.String(50), nullable=False, default="Group Stage")
    stadium = db.Column(db.String(120))

    # Scores
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Match status
    is_finished = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "MatchPrediction", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_match_date", "match_date"),
        db.Index("idx_match_finished", "is_finished"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
    )

    def __repr__(self):
        home = self.home_team.name if self.home_team else "TBD"
        away = self.away_team.name if self.away_team else "TBD"
        return f"<Match {home} x {away} ({self.stage})>"

    @property
    def has_result(self):
        """Finished with both scores entered"""
        return (
            self.is_finished
            and self.home_score is not None
            and self.away_score is not None
        )

    @property
    def outcome(self):
        """'home_win', 'away_win' or 'draw'; None until the result is in"""
        if not self.has_result:
            return None
        if self.home_score > self.away_score:
            return "home_win"
        if self.away_score > self.home_score:
            return "away_win"
        return "draw"

    @property
    def winning_team(self):
        """Get the winning team (None if not finished or a draw)"""
        outcome = self.outcome
        if outcome == "home_win":
            return self.home_team
        if outcome == "away_win":
            return self.away_team
        return None

    @property
    def status(self):
        """Get match status as string"""
        if self.is_finished:
            return "finished"
        return "in_progress" if self.has_started() else "scheduled"

    def has_started(self):
        """Check if the match has kicked off"""
        if not self.match_date:
            return False
        match_date = self.match_date

        # Naive datetimes are stored as UTC
        if match_date.tzinfo is None:
            match_date = match_date.replace(tzinfo=timezone.utc)

        return datetime.now(timezone.utc) >= match_date

    def accepts_predictions(self):
        """Predictions may be created or changed until the match is finished"""
        return not self.is_finished

    def record_result(self, home_score, away_score):
        """Store the final score. Rescoring is the caller's job."""
        self.home_score = home_score
        self.away_score = away_score
        self.is_finished = True

    def to_dict(self, include_predictions_count=False):
        """Convert match to dictionary for API responses"""
        data = {
            "id": self.id,
            "stage": self.stage,
            "stadium": self.stadium,
            "match_date": self.match_date.isoformat() if self.match_date else None,
            "home_team": self.home_team.to_dict() if self.home_team else None,
            "away_team": self.away_team.to_dict() if self.away_team else None,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "is_finished": self.is_finished,
            "outcome": self.outcome,
            "winning_team_id": self.winning_team.id if self.winning_team else None,
            "status": self.status,
        }

        if include_predictions_count:
            data["predictions_count"] = self.predictions.count()

        return data
