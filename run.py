from bolao import create_app, db
from bolao.models import (
    FinalPrediction,
    Group,
    GroupPrediction,
    Match,
    MatchPrediction,
    PointsLedgerEntry,
    Team,
    User,
)
from bolao.services.points_ledger import points_ledger

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Group": Group,
        "Team": Team,
        "Match": Match,
        "MatchPrediction": MatchPrediction,
        "GroupPrediction": GroupPrediction,
        "FinalPrediction": FinalPrediction,
        "PointsLedgerEntry": PointsLedgerEntry,
        "points_ledger": points_ledger,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
