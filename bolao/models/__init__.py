from bolao import db  # noqa: F401 - imported for model imports

from .final_prediction import FinalPrediction
from .group import Group
from .group_prediction import GroupPrediction
from .group_result import GroupResult
from .match import Match
from .match_prediction import MatchPrediction
from .points_ledger_entry import PointsLedgerEntry
from .scoring_run import ScoringRun
from .team import Team
from .tournament_result import TournamentResult
from .user import User
from .user_stats import UserStats

__all__ = [
    "User",
    "Group",
    "Team",
    "Match",
    "MatchPrediction",
    "GroupPrediction",
    "GroupResult",
    "FinalPrediction",
    "TournamentResult",
    "PointsLedgerEntry",
    "UserStats",
    "ScoringRun",
]
