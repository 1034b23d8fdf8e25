from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None)
    preferred_currency: str | None = Field(default=None, min_length=1)
    timezone: str | None = Field(default=None, min_length=1)
    large_expense_threshold: float | None = Field(default=None, ge=0)
