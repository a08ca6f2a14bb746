from pydantic import BaseModel, model_validator
from typing import Dict, List, Optional

class FeedbackIn(BaseModel):
    article_id: Optional[int] = None
    message_id: Optional[int] = None  # Telegram message the article was delivered in
    signal: str = "like"              # only "like" is learned from

    @model_validator(mode="after")
    def _needs_reference(self):
        if self.article_id is None and self.message_id is None:
            raise ValueError("article_id or message_id is required")
        if self.signal != "like":
            raise ValueError("signal must be 'like'")
        return self

class SettingIn(BaseModel):
    value: str

class TagWeightOut(BaseModel):
    tag: str
    weight: float
    count: int

class PrefsOut(BaseModel):
    like_count: int
    top_tags: List[TagWeightOut]

class ScheduleOut(BaseModel):
    time_of_day: str
    timezone: str
    status: str
    next_fire_time: Optional[str] = None
    active_triggers: int

class SettingsOut(BaseModel):
    settings: Dict[str, str]
