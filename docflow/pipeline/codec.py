"""Converts channel messages to and from pipeline models.

Every decoder validates structure and raises MalformedEnvelopeError on the
first violation. Encoders produce JSON-ready dicts.
"""

from datetime import datetime, timezone
from typing import Any

from docflow.pipeline.exceptions import MalformedEnvelopeError
from docflow.pipeline.models import (
    AttachmentEntry,
    Envelope,
    EnvelopeKind,
    InboundDocument,
    StageRequest,
    SubmissionPayload,
    sequence_of,
)

_DEFAULT_FILENAME = "untitled"


# -- encoding -------------------------------------------------------------


def attachment_to_dict(entry: AttachmentEntry) -> dict[str, Any]:
    return {
        "filename": entry.filename,
        "content_type": entry.content_type,
        "content_location": entry.content_location,
        "extracted_text": entry.extracted_text,
        "classification": entry.classification,
        "confidence": entry.confidence,
        "processing_error": entry.processing_error,
    }


def payload_to_dict(payload: SubmissionPayload) -> dict[str, Any]:
    return {
        "subject": payload.subject,
        "sender": payload.sender,
        "body": payload.body,
        "received_at": payload.received_at.isoformat(),
        "attachments": [attachment_to_dict(a) for a in payload.attachments],
    }


def envelope_to_dict(envelope: Envelope) -> dict[str, Any]:
    return {
        "id": envelope.id,
        "kind": envelope.kind.value,
        "sequence": envelope.sequence,
        "payload": payload_to_dict(envelope.payload),
    }


def stage_request_to_dict(request: StageRequest) -> dict[str, Any]:
    return {
        "submission_id": request.submission_id,
        "payload": payload_to_dict(request.payload),
    }


def inbound_to_dict(document: InboundDocument) -> dict[str, Any]:
    return {
        "id": document.id,
        "subject": document.subject,
        "sender": document.sender,
        "body": document.body,
        "receivedAt": document.received_at.isoformat(),
        "attachments": [
            {
                "filename": a.filename,
                "contentType": a.content_type,
                "location": a.content_location,
            }
            for a in document.attachments
        ],
    }


# -- decoding -------------------------------------------------------------


def envelope_from_dict(data: Any) -> Envelope:
    obj = _require_object(data, "envelope")
    envelope_id = _require_id(obj.get("id"), "envelope.id")
    raw_kind = obj.get("kind")
    try:
        kind = EnvelopeKind(raw_kind)
    except ValueError as exc:
        raise MalformedEnvelopeError(f"Unknown envelope kind: {raw_kind!r}") from exc
    sequence = obj.get("sequence", sequence_of(kind.value))
    if not isinstance(sequence, int) or isinstance(sequence, bool) or sequence < 0:
        raise MalformedEnvelopeError("'sequence' must be a non-negative integer")
    payload = payload_from_dict(obj.get("payload"))
    return Envelope(id=envelope_id, kind=kind, payload=payload, sequence=sequence)


def stage_request_from_dict(data: Any) -> StageRequest:
    obj = _require_object(data, "stage request")
    submission_id = _require_id(obj.get("submission_id"), "submission_id")
    return StageRequest(
        submission_id=submission_id,
        payload=payload_from_dict(obj.get("payload")),
    )


def payload_from_dict(data: Any) -> SubmissionPayload:
    obj = _require_object(data, "payload")
    return SubmissionPayload(
        subject=_optional_str(obj.get("subject"), "payload.subject"),
        sender=_optional_str(obj.get("sender"), "payload.sender"),
        body=_optional_str(obj.get("body"), "payload.body"),
        received_at=_parse_timestamp(obj.get("received_at"), "payload.received_at"),
        attachments=attachments_from_list(obj.get("attachments", [])),
    )


def attachments_from_list(data: Any) -> tuple[AttachmentEntry, ...]:
    if not isinstance(data, list):
        raise MalformedEnvelopeError("'attachments' must be a list")
    return tuple(_attachment_from_dict(item, i) for i, item in enumerate(data))


def inbound_from_dict(data: Any) -> InboundDocument:
    """Decode a "document found" event.

    Accepts camelCase keys as published by the mailbox collaborator and the
    snake_case spellings some producers use.
    """
    obj = _require_object(data, "inbound document")
    document_id = _require_id(obj.get("id"), "id")
    raw_received = obj.get("receivedAt", obj.get("received_at"))
    received_at = (
        datetime.now(timezone.utc)
        if raw_received is None
        else _parse_timestamp(raw_received, "receivedAt")
    )
    raw_attachments = obj.get("attachments") or []
    if not isinstance(raw_attachments, list):
        raise MalformedEnvelopeError("'attachments' must be a list")
    attachments = tuple(
        _inbound_attachment(item, i) for i, item in enumerate(raw_attachments)
    )
    return InboundDocument(
        id=document_id,
        subject=_optional_str(obj.get("subject"), "subject"),
        sender=_optional_str(obj.get("sender"), "sender"),
        body=_optional_str(obj.get("body"), "body"),
        received_at=received_at,
        attachments=attachments,
    )


def _inbound_attachment(raw: Any, index: int) -> AttachmentEntry:
    if not isinstance(raw, dict):
        raise MalformedEnvelopeError(f"Attachment at index {index} must be an object")
    content_type = raw.get("contentType", raw.get("content_type"))
    location = raw.get("location", raw.get("url"))
    if not isinstance(content_type, str) or not content_type:
        raise MalformedEnvelopeError(
            f"Attachment at index {index}: 'contentType' must be a non-empty string"
        )
    if not isinstance(location, str) or not location:
        raise MalformedEnvelopeError(
            f"Attachment at index {index}: 'location' must be a non-empty string"
        )
    filename = raw.get("filename") or _DEFAULT_FILENAME
    if not isinstance(filename, str):
        raise MalformedEnvelopeError(
            f"Attachment at index {index}: 'filename' must be a string"
        )
    return AttachmentEntry(
        filename=filename,
        content_type=content_type,
        content_location=location,
    )


def _attachment_from_dict(raw: Any, index: int) -> AttachmentEntry:
    if not isinstance(raw, dict):
        raise MalformedEnvelopeError(f"Attachment at index {index} must be an object")
    for key in ("filename", "content_type", "content_location"):
        if not isinstance(raw.get(key), str):
            raise MalformedEnvelopeError(
                f"Attachment at index {index}: '{key}' must be a string"
            )
    confidence = raw.get("confidence")
    if confidence is not None:
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise MalformedEnvelopeError(
                f"Attachment at index {index}: 'confidence' must be a number or null"
            )
        confidence = float(confidence)
    return AttachmentEntry(
        filename=raw["filename"],
        content_type=raw["content_type"],
        content_location=raw["content_location"],
        extracted_text=_nullable_str(raw.get("extracted_text"), index, "extracted_text"),
        classification=_nullable_str(raw.get("classification"), index, "classification"),
        confidence=confidence,
        processing_error=_nullable_str(
            raw.get("processing_error"), index, "processing_error"
        ),
    )


def _require_object(data: Any, name: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedEnvelopeError(f"{name} must be an object")
    return data


def _require_id(raw: Any, name: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedEnvelopeError(f"'{name}' must be a non-empty string")
    return raw


def _optional_str(raw: Any, name: str) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise MalformedEnvelopeError(f"'{name}' must be a string")
    return raw


def _nullable_str(raw: Any, index: int, key: str) -> str | None:
    if raw is not None and not isinstance(raw, str):
        raise MalformedEnvelopeError(
            f"Attachment at index {index}: '{key}' must be a string or null"
        )
    return raw


def _parse_timestamp(raw: Any, name: str) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        raise MalformedEnvelopeError(f"'{name}' must be an ISO-8601 string")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise MalformedEnvelopeError(f"'{name}' is not a valid timestamp: {raw!r}") from exc
