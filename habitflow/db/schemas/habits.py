from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from habitflow.utils.enums import HabitFrequency, HabitStatus


class HabitBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    frequency: Optional[HabitFrequency] = HabitFrequency.daily
    category: Optional[str] = None
    reward_points: Optional[int] = Field(default=1, ge=0)
    status: Optional[HabitStatus] = HabitStatus.active
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class HabitCreate(HabitBase):
    pass


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    frequency: Optional[HabitFrequency] = None
    category: Optional[str] = None
    reward_points: Optional[int] = Field(default=None, ge=0)
    status: Optional[HabitStatus] = None
    model_config = ConfigDict(use_enum_values=True)


class Habit(HabitBase):
    id: int
    user_id: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
