from pydantic import BaseModel
from typing import Optional, Any

class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None

class MessageResponse(BaseModel):
    """
    Plain success acknowledgement.
    """
    success: bool = True
    message: str
