from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DocumentInput:
    filename: str
    content: bytes
    media_type: str = "application/pdf"


class FeedbackClient(Protocol):
    async def feedback(self, document: DocumentInput, prompt: str) -> str: ...
