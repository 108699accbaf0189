"""
SpeedRead Reader Settings API Routes
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from speedread.db.sqlite import get_db
from speedread.services.progress_service import progress_service

router = APIRouter()
logger = logging.getLogger(__name__)

class SettingsUpdate(BaseModel):
    """Request model for updating settings"""
    wpm: Optional[int] = Field(None, description="Reading speed in words per minute, clamped to the allowed range", gt=0)
    grouping_enabled: Optional[bool] = Field(None, description="Show short words in groups")

class SettingsResponse(BaseModel):
    """Response model for settings"""
    id: str
    wpm: int
    grouping_enabled: bool
    updated_at: datetime

    class Config:
        """Pydantic config"""
        from_attributes = True

@router.get("/", response_model=SettingsResponse)
async def get_settings(db: Session = Depends(get_db)):
    """
    Get reader settings
    """
    try:
        return progress_service.get_settings(db)

    except Exception as e:
        logger.error(f"Failed to get settings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get settings: {str(e)}"
        )

@router.put("/", response_model=SettingsResponse)
async def update_settings(settings_update: SettingsUpdate, db: Session = Depends(get_db)):
    """
    Update reader settings
    """
    try:
        update_data = settings_update.model_dump(exclude_unset=True)
        return progress_service.update_settings(db, **update_data)

    except Exception as e:
        logger.error(f"Failed to update settings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update settings: {str(e)}"
        )

@router.post("/reset", response_model=SettingsResponse)
async def reset_settings(db: Session = Depends(get_db)):
    """
    Reset settings to default values
    """
    try:
        return progress_service.reset_settings(db)

    except Exception as e:
        logger.error(f"Failed to reset settings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reset settings: {str(e)}"
        )
