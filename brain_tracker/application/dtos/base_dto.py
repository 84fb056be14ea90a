# brain_tracker/application/dtos/base_dto.py

"""
Base class for the application DTOs.

The public API speaks camelCase (``accessToken``, ``refreshToken``) while
the Python side keeps snake_case attributes; both spellings are accepted
on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBaseModel(BaseModel):
    """
    Base model for every DTO in the application.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
