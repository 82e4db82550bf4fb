"""
Fields
-------

Defines some additional fields so that the Schemas can
serialize to and from additional native python data types.
"""

from enum import Enum
from typing import Union, Optional, Type

from marshmallow import fields, ValidationError


class EnumField(fields.Field):
    """
    A field that serializes a string :class:`~enum.Enum` to its value and back.
    """

    def __init__(self, enum_type: Type[Enum], *args, **kwargs):
        """
        :param enum_type: the :class:`~enum.Enum` subclass
        """
        super().__init__(*args, **kwargs)
        if not issubclass(enum_type, Enum):
            raise ValidationError(f"Expected enum type, got {type(enum_type)} instead")
        self._enum_type = enum_type

    def _serialize(self, value: Union[Enum, str], attr, obj, **kwargs) -> Optional[str]:
        """Converts an enum to its value."""
        if value is None:
            return None
        try:
            return self._enum_type(value).value
        except ValueError:
            raise ValidationError(f"{value} does not exist on {self._enum_type.__name__}.")

    def _deserialize(self, value: str, attr, data, **kwargs) -> Enum:
        """Converts a string back to the enum type."""
        try:
            return self._enum_type(value)
        except ValueError:
            choices = ", ".join(enum.value for enum in self._enum_type)
            raise ValidationError(f"Must be one of {choices}.")


def Many(schema):
    return fields.List(fields.Nested(schema))
