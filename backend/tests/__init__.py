# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from pingpong.models.match import Match  # noqa: F401
from pingpong.models.player import Player  # noqa: F401
from pingpong.models.portfolio_entry import PortfolioEntry  # noqa: F401
from pingpong.models.tournament import Tournament  # noqa: F401
