# Import all models here to ensure they are registered with Base
from .tournament import Tournament
from .team import Team
from .match import Match
