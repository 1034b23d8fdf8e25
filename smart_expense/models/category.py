from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str
    icon: str | None = Field(default=None)
    color: str | None = Field(default=None)
    is_tax_deductible: bool = Field(default=False)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None)
    icon: str | None = Field(default=None)
    color: str | None = Field(default=None)
    is_tax_deductible: bool | None = Field(default=None)
