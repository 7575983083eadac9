from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from habitflow.utils.enums import PomodoroStatus


class PomodoroBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=25, gt=0)
    status: Optional[PomodoroStatus] = PomodoroStatus.running
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    habit_id: Optional[int] = None
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class PomodoroCreate(PomodoroBase):
    pass


class PomodoroUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    status: Optional[PomodoroStatus] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    habit_id: Optional[int] = None
    model_config = ConfigDict(use_enum_values=True)


class Pomodoro(PomodoroBase):
    id: int
    user_id: str
    start_time: datetime
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
