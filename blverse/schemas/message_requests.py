# blverse/schemas/message_requests.py
"""
Request schemas for direct messaging.

Content fields default to empty strings so that blank input reaches the
service and fails there with a 400, the same as whitespace-only input.
"""

from typing import Optional

from pydantic import Field

from ._strict_base import StrictRequestModel


class SendTextRequest(StrictRequestModel):
    content: str = Field("", max_length=5000)
    reply_to: Optional[str] = Field(None, alias="replyTo")


class EditMessageRequest(StrictRequestModel):
    content: str = Field("", max_length=5000)


class TypingRequest(StrictRequestModel):
    typing: bool = True


class ReactionRequest(StrictRequestModel):
    emoji: str = ""


SendTextRequest.model_rebuild()
