from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.core.database import Base

class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"))
    name = Column(String)
    group_number = Column(Integer, nullable=True)
    logo_url = Column(String, nullable=True)

    tournament = relationship("Tournament", back_populates="teams")
