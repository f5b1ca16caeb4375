"""
Shares API Router
Endpoints for caretaker share links
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_user_id, services
from api.schemas.share import ShareResponse, SharedView
from services.share_service import ShareNotFoundError, ShareInactiveError


router = APIRouter(tags=["shares"])


@router.post("/users/{user_id}/shares", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
async def create_share(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Issue a read-only link for a caretaker"""
    share_service = services.get_share_service()
    return await share_service.create_share(user_id, db=db)


@router.delete("/shares/{token}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share(
    token: str,
    db: Session = Depends(get_db)
):
    share_service = services.get_share_service()

    if not await share_service.revoke_share(token, db=db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Share link not found"
        )


@router.get("/shares/{token}", response_model=SharedView)
async def get_shared_view(
    token: str,
    db: Session = Depends(get_db)
):
    """Caretaker view: adherence score, medicines and recent doses"""
    share_service = services.get_share_service()

    try:
        return await share_service.get_shared_view(token, db=db)
    except ShareNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ShareInactiveError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
