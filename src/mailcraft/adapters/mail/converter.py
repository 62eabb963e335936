"""MIME codec between :class:`~mailcraft.domain.email.Email` and wire messages.

Built on the standard library ``email`` package with ``email.policy.default``.

Message layout produced by :func:`email_to_message`::

    multipart/mixed                      (only with attachments or a forward)
      multipart/alternative              (only with more than one body)
        text/plain
        multipart/related                (only with embedded images)
          text/html
          image/...  Content-ID: <name>
        text/calendar; method=REQUEST
      application/...  (attachments)
      message/rfc822   (forwarded message)

:func:`message_to_email` reads the layout back. Leaf parts carrying a
``Content-ID`` become embedded images, parts with a file name or an
``attachment`` disposition become attachments, and the first plain, HTML and
calendar parts become the bodies.

Text bodies are written as UTF-8 with base64 transfer encoding, so line
endings and trailing line breaks come back exactly as written. MIME type
parameters of attachments and embedded images are carried on their parts;
the ``type/subtype`` comes back lower-cased. Recipients come back grouped
TO, then CC, then BCC.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from email import message_from_bytes, message_from_string, policy
from email.headerregistry import Address
from email.message import EmailMessage, Message
from email.utils import collapse_rfc2231_value, formatdate, getaddresses, make_msgid
from typing import Any, cast

from ...domain.builder import DEFAULT_QUOTING_MARKUP, EmailBuilder, EmailPopulatingBuilder
from ...domain.email import Email
from ...domain.enums import CalendarMethod, RecipientType
from ...domain.recipient import DEFAULT_MIME_TYPE, BytesDataSource, Recipient

logger = logging.getLogger(__name__)

DISPOSITION_NOTIFICATION_TO = "Disposition-Notification-To"
RETURN_RECEIPT_TO = "Return-Receipt-To"

# Headers the codec owns; everything else round-trips through Email.headers.
_MANAGED_HEADERS = frozenset(
    {
        "message-id",
        "date",
        "subject",
        "from",
        "reply-to",
        "to",
        "cc",
        "bcc",
        "mime-version",
        "content-type",
        "content-transfer-encoding",
        "content-disposition",
        "content-id",
        DISPOSITION_NOTIFICATION_TO.lower(),
        RETURN_RECEIPT_TO.lower(),
    }
)

WireInput = Message | str | bytes


def _address(recipient: Recipient) -> Address:
    username, _, domain = recipient.address.rpartition("@")
    if not username:
        return Address(display_name=recipient.name or "", addr_spec=recipient.address)
    return Address(display_name=recipient.name or "", username=username, domain=domain)


def _split_mime_type(mime_type: str) -> tuple[str, str, dict[str, str]]:
    """Split ``type/subtype; key=value`` into its parts, falling back to octet-stream.

    Examples:
        >>> _split_mime_type('image/PNG; name="x.png"')
        ('image', 'png', {'name': 'x.png'})
        >>> _split_mime_type("garbage")
        ('application', 'octet-stream', {})
    """
    essence, *raw_params = mime_type.split(";")
    maintype, _, subtype = essence.strip().lower().partition("/")
    if not maintype or not subtype:
        maintype, _, subtype = DEFAULT_MIME_TYPE.partition("/")
    params: dict[str, str] = {}
    for raw in raw_params:
        key, sep, value = raw.partition("=")
        if sep and key.strip():
            params[key.strip().lower()] = value.strip().strip('"')
    return maintype, subtype, params


def _mime_type_of(part: Message) -> str:
    """Rebuild ``type/subtype; key=value`` from a parsed part."""
    pieces = [part.get_content_type()]
    for key, value in (part.get_params() or [])[1:]:
        pieces.append(f"{key}={collapse_rfc2231_value(value)}")
    return "; ".join(pieces)


def _set_body(message: EmailMessage, text: str, subtype: str, params: dict[str, str] | None = None) -> None:
    content = text.encode("utf-8")
    body_params = {"charset": "utf-8", **(params or {})}
    if "Content-Type" not in message:
        message.set_content(content, maintype="text", subtype=subtype, params=body_params)
    else:
        message.add_alternative(content, maintype="text", subtype=subtype, params=body_params)


def _write_bodies(message: EmailMessage, email: Email) -> None:
    if email.plain_text is not None:
        _set_body(message, email.plain_text, "plain")
    if email.html_text is not None:
        _set_body(message, email.html_text, "html")
    if email.calendar_text is not None and email.calendar_method is not None:
        _set_body(message, email.calendar_text, "calendar", {"method": email.calendar_method.value})


def _write_embedded_images(message: EmailMessage, email: Email) -> None:
    if not email.embedded_images:
        return
    html_part = cast(EmailMessage | None, message.get_body(preferencelist=("html",))) if email.html_text else None
    for image in email.embedded_images:
        maintype, subtype, params = _split_mime_type(image.mime_type)
        cid = f"<{image.name}>"
        if html_part is not None:
            html_part.add_related(image.read_bytes(), maintype=maintype, subtype=subtype, cid=cid, params=params)
        else:
            message.add_attachment(
                image.read_bytes(), maintype=maintype, subtype=subtype, cid=cid, disposition="inline", params=params
            )


def _write_attachments(message: EmailMessage, email: Email) -> None:
    for attachment in email.attachments:
        maintype, subtype, params = _split_mime_type(attachment.mime_type)
        message.add_attachment(
            attachment.read_bytes(),
            maintype=maintype,
            subtype=subtype,
            filename=attachment.name or None,
            params=params,
        )
    if email.email_to_forward is not None:
        message.add_attachment(email.email_to_forward)


def email_to_message(email: Email) -> EmailMessage:
    """Convert ``email`` into a wire-format :class:`~email.message.EmailMessage`.

    A ``Message-ID`` is generated when the email has no fixed id. Resolved
    notification targets become ``Disposition-Notification-To`` and
    ``Return-Receipt-To`` headers. The ``Bcc`` header is kept; ``smtplib``
    removes it when sending.

    Example:
        >>> from mailcraft.domain.builder import EmailBuilder
        >>> email = (
        ...     EmailBuilder.starting_blank()
        ...     .from_("a@example.com", "Ann")
        ...     .to("b@example.com")
        ...     .fixing_message_id("<1@example.com>")
        ...     .with_plain_text("hi")
        ...     .build_email()
        ... )
        >>> message = email_to_message(email)
        >>> message["From"], message["Message-ID"]
        ('Ann <a@example.com>', '<1@example.com>')
    """
    message = EmailMessage(policy=policy.default)
    message["Message-ID"] = email.id or make_msgid()
    message["Date"] = formatdate(localtime=True)
    if email.subject is not None:
        message["Subject"] = email.subject
    if email.from_recipient is not None:
        message["From"] = _address(email.from_recipient)
    if email.reply_to_recipient is not None:
        message["Reply-To"] = _address(email.reply_to_recipient)
    for recipient_type in RecipientType:
        group = email.recipients_of_type(recipient_type)
        if group:
            message[recipient_type.value] = [_address(recipient) for recipient in group]
    if email.use_disposition_notification_to and email.disposition_notification_to is not None:
        message[DISPOSITION_NOTIFICATION_TO] = str(_address(email.disposition_notification_to))
    if email.use_return_receipt_to and email.return_receipt_to is not None:
        message[RETURN_RECEIPT_TO] = str(_address(email.return_receipt_to))
    for name, value in email.headers.items():
        del message[name]
        message[name] = value

    _write_bodies(message, email)
    _write_embedded_images(message, email)
    _write_attachments(message, email)

    logger.debug(
        "Converted email to MIME message",
        extra={
            "message_id": message["Message-ID"],
            "content_type": message.get_content_type(),
            "attachment_count": len(email.attachments),
            "embedded_image_count": len(email.embedded_images),
        },
    )
    return message


def _parse_addresses(headers: list[Any] | None, recipient_type: RecipientType | None = None) -> list[Recipient]:
    if not headers:
        return []
    return [
        Recipient(name or None, address, recipient_type)
        for name, address in getaddresses([str(header) for header in headers])
        if address
    ]


def _single(message: Message, name: str) -> Recipient | None:
    found = _parse_addresses(message.get_all(name))
    return found[0] if found else None


def _leaf_parts(part: Message) -> Iterator[Message]:
    if part.get_content_type() == "message/rfc822" or not part.is_multipart():
        yield part
        return
    for child in cast(list[Message], part.get_payload()):
        yield from _leaf_parts(child)


def _text_of(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not isinstance(payload, bytes):
        return ""
    return payload.decode(part.get_content_charset() or "utf-8", errors="replace")


def _data_source(part: Message) -> BytesDataSource:
    payload = part.get_payload(decode=True)
    content = payload if isinstance(payload, bytes) else b""
    return BytesDataSource(content, _mime_type_of(part))


def _read_parts(message: Message, builder: EmailPopulatingBuilder) -> None:
    if not message.is_multipart() and "Content-Type" not in message and not message.get_payload():
        return
    for part in _leaf_parts(message):
        content_type = part.get_content_type()
        if content_type == "message/rfc822":
            builder.email_to_forward = cast(list[Message], part.get_payload())[0]
            continue
        content_id = part.get("Content-ID")
        if content_id is not None:
            name = str(content_id).strip().removeprefix("<").removesuffix(">")
            builder.with_embedded_image(name, _data_source(part))
            continue
        filename = part.get_filename()
        is_body = part.get_content_disposition() != "attachment" and filename is None
        if is_body and content_type == "text/plain" and builder.plain_text is None:
            builder.with_plain_text(_text_of(part))
        elif is_body and content_type == "text/html" and builder.html_text is None:
            builder.with_html_text(_text_of(part))
        elif is_body and content_type == "text/calendar" and builder.calendar_text is None:
            method = str(part.get_param("method") or "").upper()
            builder.with_calendar_text(CalendarMethod.__members__.get(method, CalendarMethod.PUBLISH), _text_of(part))
        else:
            builder.with_attachment(filename or "", _data_source(part))


def message_to_email(message: Message) -> Email:
    """Read a wire-format message back into an :class:`Email`.

    The bounce-to recipient is an SMTP envelope value and is never present
    in the message, so the result always has ``bounce_to_recipient=None``.
    """
    builder = EmailBuilder.starting_blank()
    message_id = message.get("Message-ID")
    builder.fixing_message_id(str(message_id).strip() if message_id is not None else None)
    subject = message.get("Subject")
    if subject is not None:
        builder.with_subject(str(subject))

    sender = _single(message, "From")
    if sender is not None:
        builder.from_(sender)
    reply_to = _single(message, "Reply-To")
    if reply_to is not None:
        builder.with_reply_to(reply_to)
    for recipient_type in RecipientType:
        builder.with_recipients(_parse_addresses(message.get_all(recipient_type.value), recipient_type))

    disposition_target = _single(message, DISPOSITION_NOTIFICATION_TO)
    if disposition_target is not None:
        builder.with_disposition_notification_to(disposition_target)
    receipt_target = _single(message, RETURN_RECEIPT_TO)
    if receipt_target is not None:
        builder.with_return_receipt_to(receipt_target)

    for name, value in message.items():
        if name.lower() not in _MANAGED_HEADERS:
            builder.with_header(name, str(value))

    _read_parts(message, builder)
    email = builder.build_email()
    logger.debug(
        "Converted MIME message to email",
        extra={"message_id": email.id, "recipient_count": len(email.recipients)},
    )
    return email


def _as_message(wire: WireInput) -> Message:
    if isinstance(wire, Message):
        return wire
    if isinstance(wire, bytes):
        return message_from_bytes(wire, policy=policy.default)
    return message_from_string(wire, policy=policy.default)


def email_to_eml(email: Email) -> str:
    """Render ``email`` as RFC 5322 text (``.eml`` file content)."""
    return email_to_message(email).as_string()


def eml_to_email(eml: str | bytes) -> Email:
    """Parse ``.eml`` content into an :class:`Email`.

    Example:
        >>> email = eml_to_email("From: a@example.com\\nTo: b@example.com\\nSubject: Hi\\n\\nBody\\n")
        >>> email.subject, email.plain_text, email.recipients[0].address
        ('Hi', 'Body\\n', 'b@example.com')
    """
    return message_to_email(_as_message(eml))


def copying_message(wire: WireInput) -> EmailPopulatingBuilder:
    """Return a builder holding every field of a wire-format message."""
    return EmailBuilder.copying(message_to_email(_as_message(wire)))


def replying_to_message(
    wire: WireInput, *, reply_all: bool = False, html_quote_template: str = DEFAULT_QUOTING_MARKUP
) -> EmailPopulatingBuilder:
    """Return a reply builder for a wire-format message."""
    return EmailBuilder.replying_to(
        message_to_email(_as_message(wire)), reply_all=reply_all, html_quote_template=html_quote_template
    )


def forwarding_message(wire: WireInput) -> EmailPopulatingBuilder:
    """Return a builder that forwards a wire-format message as an attachment."""
    return EmailBuilder.forwarding(_as_message(wire))


__all__ = [
    "DISPOSITION_NOTIFICATION_TO",
    "RETURN_RECEIPT_TO",
    "copying_message",
    "email_to_eml",
    "email_to_message",
    "eml_to_email",
    "forwarding_message",
    "message_to_email",
    "replying_to_message",
]
