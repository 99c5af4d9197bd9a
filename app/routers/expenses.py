"""
Router Expenses - dépenses hors coût d'achat.
Endpoints: /v1/expenses
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.db.deps import get_db
from app.repositories.inventory_repository import InventoryRepository

router = APIRouter(prefix="/v1/expenses", tags=["expenses"])


class ExpenseCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=30)
    description: Optional[str] = None
    amount: float = Field(..., gt=0)
    currency_code: str = Field("GBP", min_length=3, max_length=3)
    incurred_on: date


class ExpenseResponse(BaseModel):
    id: int
    category: str
    description: Optional[str]
    amount: float
    currency_code: str
    incurred_on: date

    class Config:
        from_attributes = True


@router.post("", response_model=ExpenseResponse)
def create_expense(payload: ExpenseCreate, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    fields = payload.model_dump()
    fields["currency_code"] = payload.currency_code.upper()
    expense = InventoryRepository(db).add_expense(user_id, **fields)
    db.commit()
    return expense


@router.get("", response_model=List[ExpenseResponse])
def list_expenses(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return InventoryRepository(db).list_expenses(user_id, start, end)
