from fastapi import Depends
from sqlalchemy.orm import Session

from database.db import get_db
from services.sheet_repository import SheetRepository, SqlSheetRepository


def get_sheet_repository(db: Session = Depends(get_db)) -> SheetRepository:
    return SqlSheetRepository(db)
