# app/shared/schemas/common.py
from pydantic import BaseModel, Field, validator
from datetime import datetime

class BaseResponse(BaseModel):
    success: bool
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return (total + page_size - 1) // page_size

def _not_null(cls, v):
    if v is None:
        raise ValueError('El campo no puede ser null')
    return v

def reject_null(*fields: str):
    """
    Validator para updates parciales: los campos pueden omitirse pero no
    enviarse en null, porque sus columnas no aceptan valores vacíos.
    """
    return validator(*fields, allow_reuse=True)(_not_null)
