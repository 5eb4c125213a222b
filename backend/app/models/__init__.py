# Import every model so Base.metadata knows all tables
from backend.app.models.tournament_model import Tournament
from backend.app.models.player_model import TournamentPlayer
from backend.app.models.match_model import TournamentMatch
from backend.app.models.score_report_model import ScoreReport
