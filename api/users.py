"""
Users API Router
Endpoints for user profiles
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.user import UserCreate, UserUpdate, UserResponse


router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """
    Create a user profile

    - **name**: Display name
    - **email**: Unique email address
    - **caretaker_email**: Optional address for missed-dose alerts
    """
    user_service = services.get_user_service()

    try:
        return await user_service.create_user(
            name=user_data.name,
            email=user_data.email,
            age=user_data.age,
            gender=user_data.gender,
            caretaker_email=user_data.caretaker_email,
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db)
):
    """Get a user profile"""
    user_service = services.get_user_service()

    user = await user_service.get_user(user_id, db=db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    updates: UserUpdate,
    db: Session = Depends(get_db)
):
    """Update profile fields such as the caretaker email"""
    user_service = services.get_user_service()

    user = await user_service.update_user(
        user_id,
        updates.model_dump(exclude_unset=True),
        db=db
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )
    return user
