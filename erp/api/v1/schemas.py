from pydantic import BaseModel


class MessageEnvelope(BaseModel):
    """Envelope for operations that have no record to return, e.g. hard deletes."""

    success: bool = True
    message: str
