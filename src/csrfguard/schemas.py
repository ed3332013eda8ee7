# schemas.py
from pydantic import BaseModel
from pydantic import ConfigDict


class TokenPair(BaseModel):
    name: str
    value: str

    model_config = ConfigDict(frozen=True)
