"""Binary codec for text-only persistence.

Byte buffers (signature images, PDF snapshots) have to survive a trip
through JSON text. Two storage forms are supported:

- int_array: a list of byte values 0-255 (portable, verbose)
- base64: a standard base64 string (compact)

The write form is selectable; decoding accepts either form, so changing
the setting never strands data that is already stored.
"""

import base64
import binascii
import re
from datetime import datetime
from typing import Any, Literal, TypeAlias
from urllib.parse import unquote_to_bytes

from .errors import DecodeError
from .models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
)

ByteEncoding: TypeAlias = Literal["int_array", "base64"]
Storable: TypeAlias = list[int] | str

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[\w-]+=[^;,]*)*)(?P<b64>;base64)?,(?P<payload>.*)$",
    re.DOTALL,
)


def encode_for_storage(data: bytes, encoding: ByteEncoding = "int_array") -> Storable:
    """Encode a byte buffer into a JSON-friendly value."""
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    return list(data)


def decode_from_storage(value: Any) -> bytes:
    """Decode a stored value back into the exact original bytes.

    Raises:
        DecodeError: If the value is not a valid int array or base64 string.
    """
    if isinstance(value, list):
        if any(isinstance(item, bool) for item in value):
            raise DecodeError("Invalid byte array: booleans are not byte values")
        try:
            return bytes(value)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid byte array: {e}") from e
    if isinstance(value, str):
        try:
            return base64.b64decode(value.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise DecodeError(f"Invalid base64 payload: {e}") from e
    raise DecodeError(f"Unsupported stored byte value of type {type(value).__name__}")


def parse_data_url(url: str) -> SignatureImage:
    """Build a SignatureImage from a ``data:`` URL produced by a canvas.

    Raises:
        ValueError: If the URL is not a data URL or carries no image.
    """
    match = _DATA_URL_RE.match(url.strip())
    if match is None:
        raise ValueError("Not a data URL")
    mime = match.group("mime") or "text/plain"
    payload = match.group("payload")
    if match.group("b64"):
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 in data URL: {e}") from e
    else:
        data = unquote_to_bytes(payload)
    return SignatureImage(data=data, mime_type=mime)


def to_data_url(image: SignatureImage) -> str:
    """Render a SignatureImage as a base64 ``data:`` URL."""
    payload = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.mime_type};base64,{payload}"


def record_to_dict(
    record: SignatureRecord, encoding: ByteEncoding = "int_array"
) -> dict[str, Any]:
    """Serialize a record into a JSON-compatible dict."""
    data: dict[str, Any] = {
        "id": record.id,
        "document_id": record.document_id,
        "document_type": record.document_type.value,
        "signature_image": {
            "mime_type": record.signature_image.mime_type,
            "data": encode_for_storage(record.signature_image.data, encoding),
        },
        "created_at": record.created_at.isoformat(),
        "synced": record.synced,
    }
    if isinstance(record, PdfSignatureRecord):
        if record.placement is None:
            raise ValueError(f"PDF signature {record.id} has no placement")
        data["original_document_bytes"] = encode_for_storage(
            record.original_document_bytes, encoding
        )
        data["signed_document_bytes"] = encode_for_storage(
            record.signed_document_bytes, encoding
        )
        data["placement"] = {
            "x": record.placement.x,
            "y": record.placement.y,
            "page_index": record.placement.page_index,
        }
    return data


def _string_field(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise DecodeError(f"Field {key} must be a string, got {type(value).__name__}")
    return value


def record_from_dict(data: dict[str, Any]) -> SignatureRecord:
    """Deserialize a dict produced by record_to_dict.

    Returns a PdfSignatureRecord when the dict carries a placement.

    Raises:
        DecodeError: If required fields are missing or invalid.
    """
    try:
        image_data = data["signature_image"]
        synced = data["synced"]
        if not isinstance(synced, bool):
            raise DecodeError(f"Field synced must be a boolean, got {synced!r}")
        common: dict[str, Any] = {
            "id": _string_field(data, "id"),
            "document_id": _string_field(data, "document_id"),
            "document_type": DocumentType(data["document_type"]),
            "signature_image": SignatureImage(
                data=decode_from_storage(image_data["data"]),
                mime_type=_string_field(image_data, "mime_type"),
            ),
            "created_at": datetime.fromisoformat(data["created_at"]),
            "synced": synced,
        }
        if "placement" in data:
            placement = data["placement"]
            return PdfSignatureRecord(
                **common,
                original_document_bytes=decode_from_storage(
                    data["original_document_bytes"]
                ),
                signed_document_bytes=decode_from_storage(
                    data["signed_document_bytes"]
                ),
                placement=Placement(
                    x=float(placement["x"]),
                    y=float(placement["y"]),
                    page_index=int(placement["page_index"]),
                ),
            )
        return SignatureRecord(**common)
    except DecodeError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Invalid stored record: {e}") from e
