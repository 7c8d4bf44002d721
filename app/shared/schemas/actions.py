# app/shared/schemas/actions.py
from typing import Any, Dict, Type
import logging

from fastapi import HTTPException, status
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message

def parse_action(payload: Any, action_models: Dict[str, Type[BaseModel]]) -> BaseModel:
    """
    Validate a ``{"action": ..., ...}`` request body against the model
    registered for its action.

    A missing action or a malformed payload is a 400; an action nobody
    handles is reported as an unexpected (500) failure.
    """
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be a JSON object"
        )
    
    action = payload.get("action")
    if not action:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="action is required"
        )
    
    model = action_models.get(action) if isinstance(action, str) else None
    if model is None:
        logger.error(f"Unknown action requested: {action!r}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Invalid action: {action}"
        )
    
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_first_error(e)
        )
