from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from decimal import Decimal


# Book schemas
class BookBase(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    physical_copies: int = Field(0, ge=0)
    price: Decimal = Field(..., ge=0)


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    physical_copies: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    sold_copies: Optional[int] = Field(None, ge=0)


class Book(BookBase):
    """
    Book as seen by the cart and checkout code.
    Two instances are the same book when they share an id, so a Book loaded in
    one session can be used as a key for a Book loaded in another.
    """
    id: int
    sold_copies: int = 0

    model_config = ConfigDict(from_attributes=True)

    def __eq__(self, other):
        if not isinstance(other, Book):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)
