from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.services import match_service
from app.schemas import match_schemas
from app.api.dependencies import get_db

router = APIRouter()

@router.get("/{match_id}", response_model=match_schemas.MatchRead)
async def get_match_details_endpoint(
    match_id: int,
    db: Session = Depends(get_db),
):
    match = match_service.get_match_details(db=db, match_id=match_id)
    if not match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return match

@router.post("/{match_id}/result", response_model=match_schemas.MatchRead)
async def submit_match_result_endpoint(
    match_id: int,
    result_in: match_schemas.MatchResultUpdate,
    db: Session = Depends(get_db),
):
    return match_service.submit_match_result(db=db, match_id=match_id, result=result_in)
