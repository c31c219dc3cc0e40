from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.core.database import Base

class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"))
    stage = Column(String, default="group")  # "group", "league", "round_of_16", ..., "final", "third_place"
    round = Column(Integer, nullable=True)
    leg = Column(Integer, default=1)
    group_number = Column(Integer, nullable=True)
    bracket_position = Column(Integer, nullable=True)

    home_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    away_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    # "WINNER_OF:<match id>", "LOSER_OF:<match id>" or "SEED:<n>"
    home_team_source = Column(String, nullable=True)
    away_team_source = Column(String, nullable=True)

    status = Column(String, default="scheduled")  # "scheduled", "live", "completed", "postponed"
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    went_to_penalties = Column(Boolean, default=False)
    home_penalty_score = Column(Integer, nullable=True)
    away_penalty_score = Column(Integer, nullable=True)
    winner_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    loser_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)

    match_date = Column(DateTime, nullable=True)
    venue = Column(String, nullable=True)

    tournament = relationship("Tournament", back_populates="matches")
    home_team = relationship("Team", foreign_keys=[home_team_id])
    away_team = relationship("Team", foreign_keys=[away_team_id])

    # The penalty columns stay flat in the table; schemas expose them as a
    # single optional PenaltyOutcome.
    @property
    def penalty(self):
        if not self.went_to_penalties or self.home_penalty_score is None or self.away_penalty_score is None:
            return None
        return {"home_score": self.home_penalty_score, "away_score": self.away_penalty_score}
