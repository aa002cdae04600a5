from typing import Optional

from pydantic import BaseModel, StrictInt


class LoginIn(BaseModel):
    password: Optional[str] = None


class ExpenseIn(BaseModel):
    date: Optional[str] = None
    category: Optional[str] = None
    item_name: Optional[str] = None
    store: Optional[str] = None
    amount: Optional[StrictInt] = None
