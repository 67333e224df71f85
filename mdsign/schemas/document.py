"""
schemas/document.py
-------------------
Typed request contract for the signing proxy (POST /signer).

The body is a tagged union discriminated by `action`:

    {"action": "create",     "fileName", "fileContent", "signers", ...}
    {"action": "list",       "limit"?, "offset"?}
    {"action": "get",        "documentId"}
    {"action": "add-signer", "documentId", "signer"}
    {"action": "delete",     "documentId"}

Fields travel camelCase on the wire; snake_case is accepted too. Unknown
fields are rejected so a typo never silently reaches the provider.
"""

import base64
import binascii
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from mdsign.core.config import settings
from mdsign.core.errors import RequestValidationFailed

MAX_SIGNERS = 50


class DocumentStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    CONCLUDED = "CONCLUDED"
    REFUSED = "REFUSED"
    EXPIRED = "EXPIRED"


class SignerRole(str, Enum):
    SIGNER = "SIGNER"
    APPROVER = "APPROVER"
    OBSERVER = "OBSERVER"


class AuthType(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    EMAIL_SMS = "EMAIL_SMS"
    EMAIL_SELFIE = "EMAIL_SELFIE"


class SignatureType(str, Enum):
    ELECTRONIC = "ELECTRONIC"
    DIGITAL_CERT = "DIGITAL_CERT"


class _ActionModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class SignerInput(_ActionModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    identifier: Optional[str] = Field(default=None, min_length=1, max_length=100)

    def to_provider(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "identifier": self.identifier or self.email,
            "action": {"type": "Signature"},
        }


class CreateDocumentAction(_ActionModel):
    action: Literal["create"]
    file_name: str = Field(..., min_length=1, max_length=255)
    file_content: str = Field(..., min_length=1)
    signers: list[SignerInput] = Field(..., min_length=1, max_length=MAX_SIGNERS)
    description: Optional[str] = Field(default=None, max_length=1000)
    folder_id: Optional[UUID] = None

    @field_validator("file_content")
    @classmethod
    def check_base64_content(cls, v: str) -> str:
        # accept "data:application/pdf;base64,...." as sent by browsers
        if v.startswith("data:") and "," in v:
            v = v.split(",", 1)[1]
        try:
            raw = base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("must be base64-encoded")
        if not raw:
            raise ValueError("file is empty")
        if len(raw) > settings.SIGNER_MAX_FILE_BYTES:
            raise ValueError(
                f"file exceeds the maximum size of {settings.SIGNER_MAX_FILE_BYTES} bytes"
            )
        return v


class ListDocumentsAction(_ActionModel):
    action: Literal["list"]
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GetDocumentAction(_ActionModel):
    action: Literal["get"]
    document_id: UUID


class AddSignerAction(_ActionModel):
    action: Literal["add-signer"]
    document_id: UUID
    signer: SignerInput


class DeleteDocumentAction(_ActionModel):
    action: Literal["delete"]
    document_id: UUID


SignerAction = Annotated[
    Union[
        CreateDocumentAction,
        ListDocumentsAction,
        GetDocumentAction,
        AddSignerAction,
        DeleteDocumentAction,
    ],
    Field(discriminator="action"),
]

_signer_action_adapter: TypeAdapter[SignerAction] = TypeAdapter(SignerAction)


def _field_path(loc: tuple, tag: Any) -> str:
    parts = list(loc)
    # pydantic prefixes errors of a tagged union member with the tag itself
    if parts and parts[0] == tag:
        parts = parts[1:]
    return ".".join(str(p) for p in parts) or "action"


def parse_signer_action(payload: Any) -> SignerAction:
    """
    Validate a raw JSON body into one of the action models.

    Raises:
        RequestValidationFailed: with one {"field", "message"} entry per
        problem; nothing has been sent to the provider at that point.
    """
    try:
        return _signer_action_adapter.validate_python(payload)
    except ValidationError as exc:
        tag = payload.get("action") if isinstance(payload, dict) else None
        details = [
            {"field": _field_path(err["loc"], tag), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise RequestValidationFailed("Invalid request", details=details)
