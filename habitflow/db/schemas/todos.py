from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from habitflow.utils.enums import TodoPriority, TodoStatus


class TodoBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: Optional[TodoStatus] = TodoStatus.active
    priority: Optional[TodoPriority] = TodoPriority.medium
    due_date: Optional[datetime] = None
    planned_date: Optional[datetime] = None
    planned_start_time: Optional[datetime] = None
    planned_end_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class TodoCreate(TodoBase):
    pass


class TodoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[TodoStatus] = None
    priority: Optional[TodoPriority] = None
    due_date: Optional[datetime] = None
    planned_date: Optional[datetime] = None
    planned_start_time: Optional[datetime] = None
    planned_end_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(use_enum_values=True)


class Todo(TodoBase):
    id: int
    user_id: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
