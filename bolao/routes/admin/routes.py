import hmac
from functools import wraps

from flask import abort, current_app, jsonify, request

from bolao import db, limiter
from bolao.models import Group, Match
from bolao.routes.admin import bp
from bolao.services.points_ledger import points_ledger
from bolao.services.ranking import verify_ledger_consistency
from bolao.services.results import (
    record_group_result,
    record_match_result,
    record_tournament_result,
)


def admin_required(f):
    """Require the shared admin token in the X-Admin-Token header"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_TOKEN")
        supplied = request.headers.get("X-Admin-Token", "")

        # No configured token means admin endpoints are disabled
        if not expected or not hmac.compare_digest(supplied, expected):
            current_app.logger.warning(
                f"Rejected admin request to {request.path} from {request.remote_addr}"
            )
            abort(403)

        return f(*args, **kwargs)

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400)
    return data


@bp.route("/matches/<int:match_id>/result", methods=["POST"])
@admin_required
@limiter.limit("60 per minute")
def match_result(match_id):
    """Save a match score and score its predictions"""
    db.get_or_404(Match, match_id)
    data = _json_body()

    match, report = record_match_result(
        match_id, data.get("home_score"), data.get("away_score")
    )
    return jsonify({"match": match.to_dict(), "scoring": report})


@bp.route("/groups/<int:group_id>/result", methods=["POST"])
@admin_required
@limiter.limit("60 per minute")
def group_result(group_id):
    """Save a group's top two and score the classification guesses"""
    db.get_or_404(Group, group_id)
    data = _json_body()

    result, report = record_group_result(
        group_id, data.get("first_team_id"), data.get("second_team_id")
    )
    return jsonify({"result": result.to_dict(), "scoring": report})


@bp.route("/tournament/result", methods=["POST"])
@admin_required
@limiter.limit("60 per minute")
def tournament_result():
    """Save the final placements and score the final guesses"""
    data = _json_body()

    result, report = record_tournament_result(
        data.get("champion_id"),
        data.get("runner_up_id"),
        data.get("third_place_id"),
        data.get("fourth_place_id"),
        final_home_score=data.get("final_home_score"),
        final_away_score=data.get("final_away_score"),
    )
    return jsonify({"result": result.to_dict(), "scoring": report})


@bp.route("/rescore", methods=["POST"])
@admin_required
@limiter.limit("10 per minute")
def rescore():
    """Rescore everything from the stored outcomes"""
    return jsonify({"scoring": points_ledger.rescore_all()})


@bp.route("/ledger/verify")
@admin_required
def verify_ledger():
    """Report disagreements between rules, ledger and stored totals"""
    discrepancies = verify_ledger_consistency()
    return jsonify(
        {"consistent": not discrepancies, "discrepancies": discrepancies}
    )
