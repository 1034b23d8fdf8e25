from pydantic import BaseModel, Field


class BudgetCreate(BaseModel):
    category_id: str
    monthly_limit: float = Field(ge=0)
    month: int = Field(ge=1, le=12)
    year: int


class BudgetUpdate(BaseModel):
    category_id: str | None = Field(default=None)
    monthly_limit: float | None = Field(default=None, ge=0)
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None)
