from typing import Generic, TypeVar
from orderdesk.schemas.base import ApiModel

T = TypeVar("T")

class Page(ApiModel, Generic[T]):
    content: list[T] = []
    total_pages: int = 0
    total_elements: int = 0
    size: int = 10
    number: int = 0
    first: bool = True
    last: bool = True
    empty: bool = True

    @classmethod
    def empty_page(cls, size: int = 10, number: int = 0):
        return cls(size=size, number=number)
