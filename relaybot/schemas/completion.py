from pydantic import BaseModel

from relaybot.schemas.conversation import Turn


class CompletionRequest(BaseModel):
    model: str
    max_tokens: int
    temperature: float
    messages: list[Turn]


class CompletionMessage(BaseModel):
    role: str = "assistant"
    content: str


class CompletionChoice(BaseModel):
    message: CompletionMessage


class CompletionResponse(BaseModel):
    choices: list[CompletionChoice]
    model: str | None = None
    usage: dict | None = None

    @property
    def text(self) -> str:
        # IndexError on an empty list is a shape error for the caller
        return self.choices[0].message.content
