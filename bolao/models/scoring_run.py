from datetime import datetime, timezone

from bolao import db


class ScoringRun(db.Model):
    """Audit row written for every scoring pass"""

    __tablename__ = "scoring_runs"

    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"

    id = db.Column(db.Integer, primary_key=True)

    category = db.Column(
        db.String(30), nullable=False
    )  # 'match', 'group_classification', 'tournament_final', 'rescore_all'
    subject_id = db.Column(db.Integer, nullable=True)

    # Outcome counters
    scored = db.Column(db.Integer, nullable=False, default=0)
    skipped = db.Column(db.Integer, nullable=False, default=0)
    removed = db.Column(db.Integer, nullable=False, default=0)
    users_updated = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default=STATUS_SUCCESS)
    error = db.Column(db.String(500), nullable=True)
    duration_ms = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("idx_scoring_run_subject", "category", "subject_id"),
        db.Index("idx_scoring_run_created", "created_at"),
    )

    def __repr__(self):
        return f"<ScoringRun {self.category}:{self.subject_id} {self.status}>"

    @staticmethod
    def log_run(
        category,
        subject_id=None,
        scored=0,
        skipped=0,
        removed=0,
        users_updated=0,
        status=STATUS_SUCCESS,
        error=None,
        duration_ms=None,
    ):
        """Record a scoring pass. The caller commits."""
        run = ScoringRun(
            category=category,
            subject_id=subject_id,
            scored=scored,
            skipped=skipped,
            removed=removed,
            users_updated=users_updated,
            status=status,
            error=error[:500] if error else None,
            duration_ms=duration_ms,
        )
        db.session.add(run)
        return run

    @staticmethod
    def get_recent(limit=10):
        return ScoringRun.query.order_by(ScoringRun.id.desc()).limit(limit).all()
