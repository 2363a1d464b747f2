# models.py
from pydantic import BaseModel, Field


class Task(BaseModel):
    id: int
    text: str = Field(min_length=1)
    completed: bool = False
