"""
Bolão Points Ledger

Turns real outcomes into persisted points. Each Process* call scores every
prediction for one subject (a match, a group or the tournament final),
upserts one ledger entry per prediction keyed by (category, prediction_id),
and then recomputes the totals of every affected user from scratch.

Passes are idempotent: re-running one after a corrected result leaves no
trace of the old score. A store failure rolls the open transaction back and
surfaces as ScoringError; nothing needs to be cleaned up before retrying.
"""

from sqlalchemy.exc import SQLAlchemyError

from bolao.exceptions import OutcomeNotReadyError, ScoringError
from bolao.models import PointsLedgerEntry, ScoringRun
from bolao.store import SqlAlchemyRecordStore
from bolao.utils.cache_utils import invalidate_ranking_cache
from bolao.utils.logging_config import ContextualLogger
from bolao.utils.performance import PerformanceMonitor
from bolao.utils.scoring import (
    Classification,
    FinalPlacement,
    PointsType,
    Score,
    accuracy_percentage,
    evaluate_group_classification,
    evaluate_match,
    evaluate_tournament_final,
)

logger = ContextualLogger(__name__)

CATEGORY_MATCH = PointsLedgerEntry.CATEGORY_MATCH
CATEGORY_GROUP = PointsLedgerEntry.CATEGORY_GROUP
CATEGORY_FINAL = PointsLedgerEntry.CATEGORY_FINAL
CATEGORY_RESCORE = "rescore_all"


def _new_report(category, subject_id):
    return {
        "category": category,
        "subject_id": subject_id,
        "scored": 0,
        "skipped": 0,
        "removed": 0,
        "users_updated": 0,
        "points_awarded": 0,
    }


class PointsLedger:
    """Scores predictions against real outcomes and keeps user totals in sync"""

    def __init__(self, store=None):
        self.store = store or SqlAlchemyRecordStore()

    # Public operations

    def process_match_result(self, match_id):
        """Score every prediction for a finished match.

        Raises OutcomeNotReadyError, without writing anything, when the match
        does not exist or has no final score.
        """
        report = self._process_match(match_id)
        invalidate_ranking_cache()
        return report

    def process_group_result(self, group_id):
        """Score every classification guess for a completed group"""
        report = self._process_group(group_id)
        invalidate_ranking_cache()
        return report

    def process_tournament_final(self):
        """Score every tournament-final guess against the completed result"""
        report = self._process_final()
        invalidate_ranking_cache()
        return report

    def recompute_user_total(self, user_id, commit=True):
        """Rebuild a user's totals by summing their ledger entries.

        matches_played counts match-category entries and accuracy is the
        share of those that were exact scores.
        """
        entries = self.store.get_ledger_entries_for_user(user_id)
        match_entries = [e for e in entries if e.category == CATEGORY_MATCH]
        exact = sum(
            1 for e in match_entries if e.points_type == PointsType.EXACT_SCORE
        )

        total = self.store.set_user_total(
            user_id,
            total_points=sum(e.points for e in entries),
            matches_played=len(match_entries),
            accuracy_percentage=accuracy_percentage(exact, len(match_entries)),
        )
        if commit:
            self.store.commit()
        return total

    def rescore_all(self):
        """
        Reprocess every finished match, completed group and the completed
        tournament result, then rebuild every user's totals.

        Ledger entries whose subject is no longer scoreable (a match reopened,
        a group result withdrawn) are removed along the way.
        """
        log = logger.bind(category=CATEGORY_RESCORE)
        summary = _new_report(CATEGORY_RESCORE, None)
        summary.update({"matches": 0, "groups": 0, "final": False})

        with PerformanceMonitor("rescore all") as monitor:
            try:
                matches = self.store.get_all_finished_match_results()
                groups = self.store.get_completed_group_results()
                tournament = self.store.get_tournament_result()
            except SQLAlchemyError as e:
                self.store.rollback()
                log.error(f"Could not load outcomes for rescoring: {e}")
                raise ScoringError(
                    f"Could not load outcomes for rescoring: {e}",
                    category=CATEGORY_RESCORE,
                ) from e

            reports = [self._process_match(match.id) for match in matches]
            reports += [self._process_group(group.group_id) for group in groups]
            final_ready = bool(tournament and tournament.is_completed)
            if final_ready:
                reports.append(self._process_final())

            for report in reports:
                for key in ("scored", "skipped", "removed", "points_awarded"):
                    summary[key] += report[key]
            summary["matches"] = len(matches)
            summary["groups"] = len(groups)
            summary["final"] = final_ready

            scoreable = {
                CATEGORY_MATCH: {match.id for match in matches},
                CATEGORY_GROUP: {group.group_id for group in groups},
                CATEGORY_FINAL: {tournament.id} if final_ready else set(),
            }

            try:
                for entry in self.store.get_all_ledger_entries():
                    if entry.related_id not in scoreable.get(entry.category, set()):
                        self.store.delete_ledger_entry(entry.category, entry.prediction_id)
                        summary["removed"] += 1
                        log.info(
                            f"Removed entry for unscoreable subject "
                            f"{entry.category}#{entry.related_id} (user {entry.user_id})"
                        )
                self.store.commit()

                users = self.store.get_all_users(exclude_admins=False)
                for user in users:
                    self.recompute_user_total(user.id, commit=False)
                summary["users_updated"] = len(users)

                self.store.record_scoring_run(
                    CATEGORY_RESCORE,
                    scored=summary["scored"],
                    skipped=summary["skipped"],
                    removed=summary["removed"],
                    users_updated=summary["users_updated"],
                    duration_ms=monitor.duration_ms,
                )
                self.store.commit()
            except SQLAlchemyError as e:
                self._fail(CATEGORY_RESCORE, None, e, log)

        log.info(
            f"Rescored {summary['matches']} matches, {summary['groups']} groups"
            f"{' and the final' if final_ready else ''}: "
            f"{summary['scored']} scored, {summary['skipped']} skipped, "
            f"{summary['removed']} removed"
        )
        invalidate_ranking_cache()
        return summary

    # Passes

    def _process_match(self, match_id):
        def prepare():
            match = self.store.get_match(match_id)
            if match is None:
                raise OutcomeNotReadyError(f"Match {match_id} does not exist")
            if (
                not match.is_finished
                or match.home_score is None
                or match.away_score is None
            ):
                raise OutcomeNotReadyError(f"Match {match_id} has no final result yet")

            actual = Score(match.home_score, match.away_score)

            def score(prediction):
                return evaluate_match(
                    Score(prediction.home_score, prediction.away_score), actual
                )

            return match_id, self.store.get_match_predictions(match_id), score

        return self._run(CATEGORY_MATCH, match_id, prepare)

    def _process_group(self, group_id):
        def prepare():
            result = self.store.get_group_result(group_id)
            if result is None or not result.is_completed:
                raise OutcomeNotReadyError(
                    f"Group {group_id} classification is not final yet"
                )

            actual = Classification(result.first_team_id, result.second_team_id)

            def score(prediction):
                return evaluate_group_classification(
                    Classification(prediction.first_team_id, prediction.second_team_id),
                    actual,
                )

            return group_id, self.store.get_group_predictions(group_id), score

        return self._run(CATEGORY_GROUP, group_id, prepare)

    def _process_final(self):
        def prepare():
            result = self.store.get_tournament_result()
            if result is None or not result.is_completed:
                raise OutcomeNotReadyError("Tournament final result is not entered yet")

            actual = FinalPlacement(
                result.champion_id,
                result.runner_up_id,
                result.third_place_id,
                result.fourth_place_id,
                Score(result.final_home_score, result.final_away_score),
            )

            def score(prediction):
                return evaluate_tournament_final(
                    FinalPlacement(
                        prediction.champion_id,
                        prediction.runner_up_id,
                        prediction.third_place_id,
                        prediction.fourth_place_id,
                        Score(prediction.final_home_score, prediction.final_away_score),
                    ),
                    actual,
                )

            return result.id, self.store.get_all_final_predictions(), score

        return self._run(CATEGORY_FINAL, None, prepare)

    def _run(self, category, subject_id, prepare):
        """
        Shared body of every pass.

        ``prepare`` returns (related_id, predictions, score) where score maps
        a prediction record to (points_type, points).
        """
        log = logger.bind(category=category, subject_id=subject_id)

        with PerformanceMonitor(f"score {category} {subject_id}") as monitor:
            try:
                related_id, predictions, score = prepare()
                report = self._apply(category, related_id, predictions, score, log)
                report["subject_id"] = related_id

                self.store.record_scoring_run(
                    category,
                    subject_id=related_id,
                    scored=report["scored"],
                    skipped=report["skipped"],
                    removed=report["removed"],
                    users_updated=report["users_updated"],
                    duration_ms=monitor.duration_ms,
                )
                self.store.commit()
            except SQLAlchemyError as e:
                self._fail(category, subject_id, e, log)

        log.info(
            f"Scored {report['scored']} predictions, skipped {report['skipped']}, "
            f"removed {report['removed']}, updated {report['users_updated']} users"
        )
        return report

    def _apply(self, category, related_id, predictions, score, log):
        report = _new_report(category, related_id)
        known_users = {
            user.id for user in self.store.get_all_users(exclude_admins=False)
        }
        affected = set()
        seen = set()

        for prediction in predictions:
            seen.add(prediction.id)

            if prediction.user_id is None or prediction.user_id not in known_users:
                log.warning(
                    f"Skipping prediction {prediction.id}: missing user "
                    f"(user_id={prediction.user_id})"
                )
                report["skipped"] += 1
                removed = self.store.delete_ledger_entry(category, prediction.id)
                if removed:
                    report["removed"] += 1
                    affected.add(removed.user_id)
                continue

            points_type, points = score(prediction)
            self.store.upsert_ledger_entry(
                user_id=prediction.user_id,
                category=category,
                prediction_id=prediction.id,
                related_id=related_id,
                points=points,
                points_type=points_type,
            )
            affected.add(prediction.user_id)
            report["scored"] += 1
            report["points_awarded"] += points
            log.debug(
                f"Prediction {prediction.id} of user {prediction.user_id}: "
                f"{points} ({points_type})"
            )

        # Entries left behind by predictions that were deleted
        for entry in self.store.get_ledger_entries_for_subject(category, related_id):
            if entry.prediction_id not in seen:
                self.store.delete_ledger_entry(category, entry.prediction_id)
                affected.add(entry.user_id)
                report["removed"] += 1
                log.info(
                    f"Removed stale entry for deleted prediction {entry.prediction_id} "
                    f"(user {entry.user_id})"
                )

        # Totals are only rebuilt from durable ledger rows
        self.store.commit()

        for user_id in sorted(affected & known_users):
            self.recompute_user_total(user_id, commit=False)
        report["users_updated"] = len(affected & known_users)

        return report

    def _fail(self, category, subject_id, error, log):
        self.store.rollback()
        log.error(f"Scoring pass failed and was rolled back: {error}")

        try:
            self.store.record_scoring_run(
                category,
                subject_id=subject_id,
                status=ScoringRun.STATUS_FAILED,
                error=str(error),
            )
            self.store.commit()
        except SQLAlchemyError as audit_error:
            self.store.rollback()
            log.error(f"Could not record failed scoring run: {audit_error}")

        raise ScoringError(
            f"Scoring {category} failed: {error}",
            category=category,
            subject_id=subject_id,
        ) from error


points_ledger = PointsLedger()
