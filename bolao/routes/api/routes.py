from flask import jsonify, request

from bolao import db
from bolao.models import Match, PointsLedgerEntry, User
from bolao.routes.api import bp
from bolao.services.ranking import build_ledger_ranking, build_ranking
from bolao.utils.cache_utils import RANKING_KEY_PREFIX, cached_route

RANKING_SOURCES = {
    "computed": build_ranking,
    "ledger": build_ledger_ranking,
}


@bp.route("/ranking")
@cached_route(key_prefix=RANKING_KEY_PREFIX)
def ranking():
    """Leaderboard; ?source=ledger reads the stored totals"""
    source = request.args.get("source", "computed")
    builder = RANKING_SOURCES.get(source)
    if builder is None:
        return {"error": f"Unknown ranking source '{source}'"}, 400

    return {"source": source, "ranking": builder()}


@bp.route("/users/<int:user_id>/points")
def user_points(user_id):
    """Ledger entries and stored totals of one user"""
    user = db.get_or_404(User, user_id)
    entries = user.ledger_entries.order_by(PointsLedgerEntry.id).all()

    return jsonify(
        {
            "user": user.to_dict(),
            "total_points": user.total_points,
            "stats": user.stats.to_dict() if user.stats else None,
            "entries": [entry.to_dict() for entry in entries],
        }
    )


@bp.route("/matches/<int:match_id>")
def match_detail(match_id):
    """Get a match with its result"""
    match = db.get_or_404(Match, match_id)
    return jsonify(match.to_dict(include_predictions_count=True))
