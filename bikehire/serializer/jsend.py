"""
JSend Envelope
--------------

Every response of the booking API is wrapped in a `JSend`_ envelope.
Successes and failures carry a ``data`` object, and a failure always
explains itself with ``data.message`` so the storefront can show it to
the customer as-is. Errors are reserved for faults on our side.

.. _`JSend`: https://github.com/omniti-labs/jsend
"""

from enum import Enum

from marshmallow import Schema, fields, validates_schema, ValidationError
from marshmallow.fields import Field

from .fields import EnumField


class JSendStatus(str, Enum):

    SUCCESS = "success"
    FAIL = "fail"
    """The customer sent something we could not act on."""

    ERROR = "error"
    """The server failed."""


class JSendSchema(Schema):
    status = EnumField(JSendStatus, required=True)
    data = fields.Dict()
    message = fields.String()
    code = fields.Integer()

    @validates_schema
    def assert_envelope(self, data, **kwargs):
        status = data["status"]
        if status is JSendStatus.ERROR:
            if "message" not in data:
                raise ValidationError("An error must carry a message.", "message")
            return

        if "data" not in data:
            raise ValidationError(f"A {status.value} response must carry data.", "data")
        if status is JSendStatus.FAIL and "message" not in data["data"]:
            raise ValidationError("A failure must tell the customer what went wrong.", "data")

    @staticmethod
    def of(**payload):
        """
        Builds an envelope whose ``data`` holds the given fields,
        for example ``JSendSchema.of(booking=BookingSchema())``.
        Schemas are nested, fields are used as they are.
        """
        data_schema = Schema.from_dict({
            name: value if isinstance(value, Field) else fields.Nested(value)
            for name, value in payload.items()
        })

        class PayloadSchema(JSendSchema):
            data = fields.Nested(data_schema)

        return PayloadSchema()
