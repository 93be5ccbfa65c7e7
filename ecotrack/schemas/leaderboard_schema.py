from pydantic import BaseModel
from typing import List


class LeaderboardEntry(BaseModel):
    rank: int
    id: str
    username: str
    full_name: str
    profile_photo: str = ""
    points: int
    level: int


class LeaderboardResponse(BaseModel):
    timeframe: str
    entries: List[LeaderboardEntry]
