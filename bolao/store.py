"""
Record store adapter

The scoring services never touch the ORM directly. They read and write
through SqlAlchemyRecordStore, which hands out immutable records with an
explicit None for every optional column. SQLAlchemy errors propagate to the
caller, which decides whether to roll back.
"""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from bolao import db
from bolao.models import (
    FinalPrediction,
    GroupPrediction,
    GroupResult,
    Match,
    MatchPrediction,
    PointsLedgerEntry,
    ScoringRun,
    TournamentResult,
    User,
    UserStats,
)


class UserRecord(NamedTuple):
    id: int
    username: str
    name: str
    nickname: Optional[str]
    is_admin: bool
    is_active: bool


class MatchRecord(NamedTuple):
    id: int
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    home_score: Optional[int]
    away_score: Optional[int]
    is_finished: bool


class MatchPredictionRecord(NamedTuple):
    id: int
    user_id: Optional[int]
    match_id: Optional[int]
    home_score: Optional[int]
    away_score: Optional[int]


class GroupResultRecord(NamedTuple):
    id: int
    group_id: int
    first_team_id: Optional[int]
    second_team_id: Optional[int]
    is_completed: bool


class GroupPredictionRecord(NamedTuple):
    id: int
    user_id: Optional[int]
    group_id: Optional[int]
    first_team_id: Optional[int]
    second_team_id: Optional[int]


class TournamentResultRecord(NamedTuple):
    id: int
    champion_id: Optional[int]
    runner_up_id: Optional[int]
    third_place_id: Optional[int]
    fourth_place_id: Optional[int]
    final_home_score: Optional[int]
    final_away_score: Optional[int]
    is_completed: bool


class FinalPredictionRecord(NamedTuple):
    id: int
    user_id: Optional[int]
    champion_id: Optional[int]
    runner_up_id: Optional[int]
    third_place_id: Optional[int]
    fourth_place_id: Optional[int]
    final_home_score: Optional[int]
    final_away_score: Optional[int]


class LedgerRecord(NamedTuple):
    id: int
    user_id: int
    points: int
    category: str
    prediction_id: int
    related_id: int
    points_type: str


class UserTotalRecord(NamedTuple):
    user_id: int
    total_points: int
    matches_played: int
    accuracy_percentage: int


UPSERT_DIALECTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}


def _user(row):
    return UserRecord(
        id=row.id,
        username=row.username,
        name=row.name,
        nickname=row.nickname,
        is_admin=bool(row.is_admin),
        is_active=bool(row.is_active),
    )


def _match(row):
    return MatchRecord(
        id=row.id,
        home_team_id=row.home_team_id,
        away_team_id=row.away_team_id,
        home_score=row.home_score,
        away_score=row.away_score,
        is_finished=bool(row.is_finished),
    )


def _match_prediction(row):
    return MatchPredictionRecord(
        id=row.id,
        user_id=row.user_id,
        match_id=row.match_id,
        home_score=row.home_score,
        away_score=row.away_score,
    )


def _group_result(row):
    return GroupResultRecord(
        id=row.id,
        group_id=row.group_id,
        first_team_id=row.first_team_id,
        second_team_id=row.second_team_id,
        is_completed=bool(row.is_completed),
    )


def _group_prediction(row):
    return GroupPredictionRecord(
        id=row.id,
        user_id=row.user_id,
        group_id=row.group_id,
        first_team_id=row.predicted_first_team_id,
        second_team_id=row.predicted_second_team_id,
    )


def _tournament_result(row):
    return TournamentResultRecord(
        id=row.id,
        champion_id=row.champion_id,
        runner_up_id=row.runner_up_id,
        third_place_id=row.third_place_id,
        fourth_place_id=row.fourth_place_id,
        final_home_score=row.final_home_score,
        final_away_score=row.final_away_score,
        is_completed=bool(row.is_completed),
    )


def _final_prediction(row):
    return FinalPredictionRecord(
        id=row.id,
        user_id=row.user_id,
        champion_id=row.champion_id,
        runner_up_id=row.runner_up_id,
        third_place_id=row.third_place_id,
        fourth_place_id=row.fourth_place_id,
        final_home_score=row.final_home_score,
        final_away_score=row.final_away_score,
    )


def _ledger(row):
    return LedgerRecord(
        id=row.id,
        user_id=row.user_id,
        points=row.points,
        category=row.category,
        prediction_id=row.prediction_id,
        related_id=row.related_id,
        points_type=row.points_type,
    )


def _user_total(row):
    return UserTotalRecord(
        user_id=row.user_id,
        total_points=row.total_points,
        matches_played=row.matches_played,
        accuracy_percentage=row.accuracy_percentage,
    )


class SqlAlchemyRecordStore:
    """Record store backed by the Flask-SQLAlchemy session"""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # Users

    def get_all_users(self, exclude_admins=True) -> List[UserRecord]:
        query = self.session.query(User)
        if exclude_admins:
            query = query.filter(User.is_admin.is_(False))
        return [_user(row) for row in query.order_by(User.id)]

    # Matches

    def get_match(self, match_id) -> Optional[MatchRecord]:
        row = self.session.get(Match, match_id)
        return _match(row) if row else None

    def get_match_predictions(self, match_id) -> List[MatchPredictionRecord]:
        rows = (
            self.session.query(MatchPrediction)
            .filter(MatchPrediction.match_id == match_id)
            .order_by(MatchPrediction.id)
        )
        return [_match_prediction(row) for row in rows]

    def get_all_match_predictions(self) -> List[MatchPredictionRecord]:
        rows = self.session.query(MatchPrediction).order_by(MatchPrediction.id)
        return [_match_prediction(row) for row in rows]

    def get_all_finished_match_results(self) -> List[MatchRecord]:
        rows = (
            self.session.query(Match)
            .filter(
                Match.is_finished.is_(True),
                Match.home_score.isnot(None),
                Match.away_score.isnot(None),
            )
            .order_by(Match.id)
        )
        return [_match(row) for row in rows]

    # Groups

    def get_group_result(self, group_id) -> Optional[GroupResultRecord]:
        row = (
            self.session.query(GroupResult)
            .filter(GroupResult.group_id == group_id)
            .first()
        )
        return _group_result(row) if row else None

    def get_completed_group_results(self) -> List[GroupResultRecord]:
        rows = (
            self.session.query(GroupResult)
            .filter(GroupResult.is_completed.is_(True))
            .order_by(GroupResult.group_id)
        )
        return [_group_result(row) for row in rows]

    def get_group_predictions(self, group_id) -> List[GroupPredictionRecord]:
        rows = (
            self.session.query(GroupPrediction)
            .filter(GroupPrediction.group_id == group_id)
            .order_by(GroupPrediction.id)
        )
        return [_group_prediction(row) for row in rows]

    def get_all_group_predictions(self) -> List[GroupPredictionRecord]:
        rows = self.session.query(GroupPrediction).order_by(GroupPrediction.id)
        return [_group_prediction(row) for row in rows]

    # Tournament final

    def get_tournament_result(self) -> Optional[TournamentResultRecord]:
        row = self.session.query(TournamentResult).order_by(TournamentResult.id).first()
        return _tournament_result(row) if row else None

    def get_all_final_predictions(self) -> List[FinalPredictionRecord]:
        rows = self.session.query(FinalPrediction).order_by(FinalPrediction.id)
        return [_final_prediction(row) for row in rows]

    # Ledger

    def upsert_ledger_entry(
        self, user_id, category, prediction_id, related_id, points, points_type
    ) -> LedgerRecord:
        """Insert or update the entry keyed by (category, prediction_id)"""
        entry = self._upsert(
            PointsLedgerEntry,
            ("category", "prediction_id"),
            {
                "user_id": user_id,
                "category": category,
                "prediction_id": prediction_id,
                "related_id": related_id,
                "points": points,
                "points_type": points_type,
            },
        )
        return _ledger(entry)

    def delete_ledger_entry(self, category, prediction_id) -> Optional[LedgerRecord]:
        """Remove the entry for a prediction; returns what was removed, if anything"""
        entry = (
            self.session.query(PointsLedgerEntry)
            .filter_by(category=category, prediction_id=prediction_id)
            .first()
        )
        if entry is None:
            return None
        record = _ledger(entry)
        self.session.delete(entry)
        self.session.flush()
        return record

    def get_ledger_entries_for_user(self, user_id) -> List[LedgerRecord]:
        rows = (
            self.session.query(PointsLedgerEntry)
            .filter(PointsLedgerEntry.user_id == user_id)
            .order_by(PointsLedgerEntry.id)
        )
        return [_ledger(row) for row in rows]

    def get_all_ledger_entries(self) -> List[LedgerRecord]:
        rows = self.session.query(PointsLedgerEntry).order_by(PointsLedgerEntry.id)
        return [_ledger(row) for row in rows]

    def get_ledger_entries_for_subject(self, category, related_id) -> List[LedgerRecord]:
        rows = (
            self.session.query(PointsLedgerEntry)
            .filter(
                PointsLedgerEntry.category == category,
                PointsLedgerEntry.related_id == related_id,
            )
            .order_by(PointsLedgerEntry.id)
        )
        return [_ledger(row) for row in rows]

    # Totals

    def get_user_total(self, user_id) -> Optional[UserTotalRecord]:
        row = self.session.query(UserStats).filter_by(user_id=user_id).first()
        return _user_total(row) if row else None

    def get_all_user_totals(self) -> List[UserTotalRecord]:
        rows = self.session.query(UserStats).order_by(UserStats.user_id)
        return [_user_total(row) for row in rows]

    def set_user_total(
        self, user_id, total_points, matches_played=0, accuracy_percentage=0
    ) -> UserTotalRecord:
        stats = self._upsert(
            UserStats,
            ("user_id",),
            {
                "user_id": user_id,
                "total_points": total_points,
                "matches_played": matches_played,
                "accuracy_percentage": accuracy_percentage,
            },
        )
        return _user_total(stats)

    # Audit

    def record_scoring_run(self, category, subject_id=None, **counters):
        run = ScoringRun.log_run(category, subject_id=subject_id, **counters)
        self.session.flush()
        return run.id

    # Upserts

    def _upsert(self, model, key_columns, values):
        """Single INSERT ... ON CONFLICT DO UPDATE on the unique ``key_columns``.

        Concurrent writers of the same key never collide: the last statement
        to run wins. Returns the stored row, refreshed from the database.
        """
        self.session.flush()

        dialect = self.session.get_bind(mapper=model).dialect.name
        if dialect not in UPSERT_DIALECTS:
            raise NotImplementedError(f"Upserts are not supported on {dialect}")

        changes = {
            column: value
            for column, value in values.items()
            if column not in key_columns
        }
        # onupdate hooks do not fire for ON CONFLICT updates
        if "updated_at" in model.__table__.c:
            changes["updated_at"] = datetime.now(timezone.utc)

        statement = UPSERT_DIALECTS[dialect](model.__table__).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=list(key_columns), set_=changes
        )
        self.session.execute(statement)

        return (
            self.session.query(model)
            .filter_by(**{column: values[column] for column in key_columns})
            .populate_existing()
            .one()
        )

    # Transactions

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
