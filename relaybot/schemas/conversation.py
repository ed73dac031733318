from typing import Literal

from pydantic import BaseModel

Role = Literal["system", "user", "assistant"]


class Turn(BaseModel):
    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "Turn":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(role="assistant", content=content)
