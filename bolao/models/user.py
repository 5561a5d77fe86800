from datetime import datetime, timezone

from bolao import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)

    # Profile information
    name = db.Column(db.String(100), nullable=False)
    nickname = db.Column(db.String(50))
    avatar_url = db.Column(db.String(500))

    # Account status
    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    match_predictions = db.relationship(
        "MatchPrediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    group_predictions = db.relationship(
        "GroupPrediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    final_prediction = db.relationship(
        "FinalPrediction", backref="user", uselist=False, cascade="all, delete-orphan"
    )
    ledger_entries = db.relationship(
        "PointsLedgerEntry", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    stats = db.relationship(
        "UserStats", backref="user", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_user_admin_active", "is_admin", "is_active"),
    )

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def display_name(self):
        """Return nickname, falling back to the first name"""
        if self.nickname:
            return self.nickname
        return self.name.split(" ")[0] if self.name else self.username

    @property
    def total_points(self):
        """Stored total from the last aggregation pass"""
        return self.stats.total_points if self.stats else 0

    @staticmethod
    def get_participants():
        """Non-admin users, i.e. everyone who appears in the ranking"""
        return (
            User.query.filter(User.is_admin.is_(False))
            .order_by(User.name)
            .all()
        )

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "nickname": self.display_name,
            "avatar_url": self.avatar_url,
            "is_active": self.is_active,
        }
