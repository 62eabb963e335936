"""Immutable email aggregate.

An :class:`Email` is only ever produced by
:meth:`mailcraft.domain.builder.EmailPopulatingBuilder.build_email`; every
collection it holds is a tuple or a read-only mapping view, so a built email
can be shared freely between threads.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from email.message import Message
from types import MappingProxyType

from .enums import CalendarMethod, RecipientType
from .recipient import AttachmentResource, Recipient


def _empty_headers() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Email:
    """Fully specified email message.

    Attributes:
        id: Fixed ``Message-ID`` or None to let the codec assign one.
        from_recipient: Sender shown in the ``From`` header.
        reply_to_recipient: Address for the ``Reply-To`` header.
        bounce_to_recipient: SMTP envelope sender; never part of the message.
        recipients: TO/CC/BCC recipients in the order they were added.
        plain_text: ``text/plain`` body.
        html_text: ``text/html`` body.
        calendar_method: iCalendar method for ``calendar_text``.
        calendar_text: ``text/calendar`` body.
        subject: Subject line.
        embedded_images: Inline resources referenced by ``cid:<name>``.
        attachments: Regular attachments.
        headers: Additional headers.
        use_disposition_notification_to: Request a read receipt.
        disposition_notification_to: Resolved read-receipt target.
        use_return_receipt_to: Request a delivery receipt.
        return_receipt_to: Resolved delivery-receipt target.
        email_to_forward: Wire-format message attached when forwarding.
    """

    id: str | None = None
    from_recipient: Recipient | None = None
    reply_to_recipient: Recipient | None = None
    bounce_to_recipient: Recipient | None = None
    recipients: tuple[Recipient, ...] = ()
    plain_text: str | None = None
    html_text: str | None = None
    calendar_method: CalendarMethod | None = None
    calendar_text: str | None = None
    subject: str | None = None
    embedded_images: tuple[AttachmentResource, ...] = ()
    attachments: tuple[AttachmentResource, ...] = ()
    headers: Mapping[str, str] = field(default_factory=_empty_headers)
    use_disposition_notification_to: bool = False
    disposition_notification_to: Recipient | None = None
    use_return_receipt_to: bool = False
    return_receipt_to: Recipient | None = None
    email_to_forward: Message | None = None

    def __hash__(self) -> int:
        return hash((self.id, self.from_recipient, self.subject, self.recipients))

    def recipients_of_type(self, recipient_type: RecipientType) -> tuple[Recipient, ...]:
        """Return the recipients tagged ``recipient_type`` in insertion order."""
        return tuple(r for r in self.recipients if r.type is recipient_type)

    def with_assigned_id(self, message_id: str) -> Email:
        """Return a copy carrying the id assigned when the message was sent.

        The only post-construction change an email ever sees; the original
        instance is left untouched.
        """
        return dataclasses.replace(self, id=message_id)

    def __str__(self) -> str:
        lines = [
            f"id={self.id}",
            f"fromRecipient={self.from_recipient}",
            f"replyToRecipient={self.reply_to_recipient}",
            f"bounceToRecipient={self.bounce_to_recipient}",
            f"text={self.plain_text!r}",
            f"textHTML={self.html_text!r}",
            f"textCalendar={self.calendar_text!r}",
            f"subject={self.subject!r}",
            f"recipients={list(self.recipients)}",
        ]
        if self.use_disposition_notification_to:
            lines.append(f"dispositionNotificationTo={self.disposition_notification_to}")
        if self.use_return_receipt_to:
            lines.append(f"returnReceiptTo={self.return_receipt_to}")
        if self.headers:
            lines.append(f"headers={dict(self.headers)}")
        if self.embedded_images:
            lines.append(f"embeddedImages={list(self.embedded_images)}")
        if self.attachments:
            lines.append(f"attachments={list(self.attachments)}")
        if self.email_to_forward is not None:
            lines.append("forwardingEmail=true")
        return "Email{\n\t" + ",\n\t".join(lines) + "\n}"


@dataclass(frozen=True, slots=True)
class SendResult:
    """Outcome of a successful send.

    Attributes:
        email: The sent email, carrying the message id used on the wire.
        message_id: The ``Message-ID`` header value of the delivered message.
    """

    email: Email
    message_id: str


__all__ = ["Email", "SendResult"]
