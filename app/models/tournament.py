from sqlalchemy import Boolean, Column, Date, Integer, String
from sqlalchemy.orm import relationship
from app.core.database import Base

class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    type = Column(String, default="knockout")  # "league", "knockout", "groups_knockout"
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    number_of_groups = Column(Integer, nullable=True)
    teams_advancing_per_group = Column(Integer, default=2)
    has_third_place_match = Column(Boolean, default=True)
    group_stage_complete = Column(Boolean, default=False)
    current_stage = Column(String, default="registration")  # "registration", "group_stage", "knockout_stage"
    trophy_image_url = Column(String, nullable=True)

    teams = relationship("Team", back_populates="tournament", cascade="all, delete-orphan")
    matches = relationship("Match", back_populates="tournament", cascade="all, delete-orphan")
