"""
Response envelope shared by all finance endpoints.

Every successful response is {"success": true, "message": ..., "data": ...};
errors use the same success/message keys (see core.exceptions.to_dict).
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: str = ""
    data: Optional[DataT] = None


def ok(data=None, message: str = "OK") -> dict:
    """Build a success envelope for a route's return value."""
    return {"success": True, "message": message, "data": data}
