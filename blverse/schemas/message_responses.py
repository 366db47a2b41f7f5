# blverse/schemas/message_responses.py
"""
Response schemas for direct messaging.

Message and conversation bodies are produced by the service as camelCase
dicts and passed through; only the small fixed-shape responses are typed.
"""

from typing import List

from pydantic import Field

from ._strict_base import StrictModel


class MarkMessagesResponse(StrictModel):
    """Response after marking a conversation read or delivered."""

    updated: int
    message_ids: List[str] = Field(..., serialization_alias="messageIds")


class DeleteMessageResponse(StrictModel):
    success: bool = True
