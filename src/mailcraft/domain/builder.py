"""Fluent email builder and its entry points.

:class:`EmailPopulatingBuilder` is the mutable staging object: every ``with_*``
/ ``to`` / ``cc`` call validates its input right away and returns the builder
for chaining. :meth:`EmailPopulatingBuilder.build_email` converts the staged
state into an immutable :class:`~mailcraft.domain.email.Email`, resolving the
notification targets on the way.

:class:`EmailBuilder` holds the ways to obtain a builder: blank (optionally
seeded with configured defaults), as a copy of an existing email, as a reply,
or as a forward.

Example:
    >>> email = (
    ...     EmailBuilder.starting_blank()
    ...     .from_("noreply@example.com", name="Robot")
    ...     .to("ada@example.com")
    ...     .with_subject("Hi")
    ...     .with_plain_text("Hello Ada")
    ...     .build_email()
    ... )
    >>> email.recipients[0].address
    'ada@example.com'
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from email.message import Message
from types import MappingProxyType
from typing import Any

from .email import Email
from .enums import CalendarMethod, RecipientType
from .errors import EmailValidationError, InvalidRecipientError
from .recipient import AttachmentResource, DataSource, Recipient

#: HTML wrapper used to quote the original HTML body in replies.
DEFAULT_QUOTING_MARKUP = (
    '<blockquote style="color: gray; border-left: 1px solid #4f4f4f; padding-left: 1cm">{}</blockquote>'
)

_REPLY_PREFIX = "Re: "
_FORWARD_PREFIX = "Fwd: "
_REPLY_PREFIX_PATTERN = re.compile(r"^\s*re\s*:", re.IGNORECASE)
_FORWARD_PREFIX_PATTERN = re.compile(r"^\s*(fwd?|fw)\s*:", re.IGNORECASE)

AddressLike = str | Recipient


def _make_recipient(
    address: AddressLike | None,
    name: str | None,
    recipient_type: RecipientType | None,
    *,
    role: str,
) -> Recipient:
    if isinstance(address, Recipient):
        recipient = address if not name else Recipient(name, address.address, address.type)
        return recipient.with_type(recipient_type)
    if address is None or not str(address).strip():
        raise InvalidRecipientError(f"{role} address must not be empty")
    return Recipient(name or None, str(address).strip(), recipient_type)


def _non_empty(value: str | None) -> str | None:
    return value if value else None


@dataclass(frozen=True, slots=True)
class EmailDefaults:
    """Defaults applied to blank builders, typically from the ``[email]`` section.

    Kept free of configuration libraries so the domain stays pure; the
    adapter layer turns configuration dictionaries into this type.
    """

    from_recipient: Recipient | None = None
    reply_to_recipient: Recipient | None = None
    bounce_to_recipient: Recipient | None = None
    recipients: tuple[Recipient, ...] = ()
    subject: str | None = None


@dataclass(slots=True)
class EmailPopulatingBuilder:
    """Mutable staging area for an :class:`Email`.

    Not meant for concurrent mutation: populate from a single thread, then
    share the built email.
    """

    id: str | None = None
    from_recipient: Recipient | None = None
    reply_to_recipient: Recipient | None = None
    bounce_to_recipient: Recipient | None = None
    recipients: list[Recipient] = field(default_factory=list)
    plain_text: str | None = None
    html_text: str | None = None
    calendar_method: CalendarMethod | None = None
    calendar_text: str | None = None
    subject: str | None = None
    embedded_images: list[AttachmentResource] = field(default_factory=list)
    attachments: list[AttachmentResource] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    use_disposition_notification_to: bool = False
    disposition_notification_to: Recipient | None = None
    use_return_receipt_to: bool = False
    return_receipt_to: Recipient | None = None
    email_to_forward: Message | None = None

    # ------------------------------------------------------------------ identity

    def fixing_message_id(self, message_id: str | None) -> EmailPopulatingBuilder:
        """Use ``message_id`` instead of letting the codec generate one."""
        self.id = _non_empty(message_id)
        return self

    # -------------------------------------------------------------- participants

    def from_(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Set the sender.

        Raises:
            InvalidRecipientError: When ``address`` is None or empty.
        """
        self.from_recipient = _make_recipient(address, name, None, role="from")
        return self

    def with_reply_to(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Set the ``Reply-To`` recipient."""
        self.reply_to_recipient = _make_recipient(address, name, None, role="reply-to")
        return self

    def with_bounce_to(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Set the envelope sender that receives bounces."""
        self.bounce_to_recipient = _make_recipient(address, name, None, role="bounce-to")
        return self

    def to(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Append a TO recipient."""
        return self._add_recipient(address, name, RecipientType.TO)

    def cc(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Append a CC recipient."""
        return self._add_recipient(address, name, RecipientType.CC)

    def bcc(self, address: AddressLike, name: str | None = None) -> EmailPopulatingBuilder:
        """Append a BCC recipient."""
        return self._add_recipient(address, name, RecipientType.BCC)

    def to_many(self, *addresses: AddressLike) -> EmailPopulatingBuilder:
        for address in addresses:
            self.to(address)
        return self

    def cc_many(self, *addresses: AddressLike) -> EmailPopulatingBuilder:
        for address in addresses:
            self.cc(address)
        return self

    def bcc_many(self, *addresses: AddressLike) -> EmailPopulatingBuilder:
        for address in addresses:
            self.bcc(address)
        return self

    def with_recipients(self, recipients: Iterable[Recipient]) -> EmailPopulatingBuilder:
        """Append recipients keeping their own TO/CC/BCC tags (untagged become TO)."""
        for recipient in recipients:
            self._add_recipient(recipient, None, recipient.type or RecipientType.TO)
        return self

    def _add_recipient(
        self, address: AddressLike, name: str | None, recipient_type: RecipientType
    ) -> EmailPopulatingBuilder:
        self.recipients.append(_make_recipient(address, name, recipient_type, role=recipient_type.value))
        return self

    # ------------------------------------------------------------------- content

    def with_subject(self, subject: str | None) -> EmailPopulatingBuilder:
        self.subject = subject
        return self

    def with_plain_text(self, text: str | None) -> EmailPopulatingBuilder:
        self.plain_text = text
        return self

    def prepend_text(self, text: str) -> EmailPopulatingBuilder:
        self.plain_text = text + (self.plain_text or "")
        return self

    def append_text(self, text: str) -> EmailPopulatingBuilder:
        self.plain_text = (self.plain_text or "") + text
        return self

    def with_html_text(self, text: str | None) -> EmailPopulatingBuilder:
        self.html_text = text
        return self

    def prepend_html_text(self, text: str) -> EmailPopulatingBuilder:
        self.html_text = text + (self.html_text or "")
        return self

    def append_html_text(self, text: str) -> EmailPopulatingBuilder:
        self.html_text = (self.html_text or "") + text
        return self

    def with_calendar_text(self, method: CalendarMethod | None, text: str | None) -> EmailPopulatingBuilder:
        """Set the ``text/calendar`` body together with its method.

        Passing ``None`` for both clears the calendar content. Any other
        partial combination is rejected immediately.

        Raises:
            EmailValidationError: When only one of method and text is given.

        Example:
            >>> builder = EmailPopulatingBuilder()
            >>> builder.with_calendar_text(CalendarMethod.REQUEST, None)  # doctest: +IGNORE_EXCEPTION_DETAIL
            Traceback (most recent call last):
            ...
            EmailValidationError: calendar method REQUEST given without calendar text
        """
        if method is None and not text:
            return self.clear_calendar_text()
        if method is None:
            raise EmailValidationError("calendar text given without a calendar method")
        if not text:
            raise EmailValidationError(f"calendar method {method.value} given without calendar text")
        self.calendar_method = CalendarMethod(method)
        self.calendar_text = text
        return self

    # --------------------------------------------------------------- attachments

    def with_attachment(self, name: str | None, data_source: DataSource | None) -> EmailPopulatingBuilder:
        """Append a regular attachment.

        Raises:
            EmailValidationError: When ``data_source`` is None.
        """
        self.attachments.append(self._resource(name, data_source, kind="attachment"))
        return self

    def with_attachments(self, resources: Iterable[AttachmentResource]) -> EmailPopulatingBuilder:
        for resource in resources:
            self.with_attachment(resource.name, resource.data_source)
        return self

    def with_embedded_image(self, name: str | None, data_source: DataSource | None) -> EmailPopulatingBuilder:
        """Append an inline image, referenced from HTML as ``cid:<name>``."""
        self.embedded_images.append(self._resource(name, data_source, kind="embedded image"))
        return self

    def with_embedded_images(self, resources: Iterable[AttachmentResource]) -> EmailPopulatingBuilder:
        for resource in resources:
            self.with_embedded_image(resource.name, resource.data_source)
        return self

    @staticmethod
    def _resource(name: str | None, data_source: DataSource | None, *, kind: str) -> AttachmentResource:
        if data_source is None:
            raise EmailValidationError(f"{kind} {name!r} requires a data source")
        return AttachmentResource(name or "", data_source)

    # ------------------------------------------------------------------- headers

    def with_header(self, name: str, value: Any) -> EmailPopulatingBuilder:
        """Set a custom header; the value is stored as its string form.

        Raises:
            EmailValidationError: When ``name`` is empty.
        """
        if not name or not name.strip():
            raise EmailValidationError("header name must not be empty")
        self.headers[name.strip()] = "" if value is None else str(value)
        return self

    def with_headers(self, headers: Mapping[str, Any]) -> EmailPopulatingBuilder:
        for name, value in headers.items():
            self.with_header(name, value)
        return self

    # ------------------------------------------------------------- notifications

    def with_disposition_notification_to(
        self, address: AddressLike | None = None, name: str | None = None
    ) -> EmailPopulatingBuilder:
        """Request a read receipt, sent to ``address`` or to reply-to/from by default."""
        self.use_disposition_notification_to = True
        self.disposition_notification_to = (
            None if address is None else _make_recipient(address, name, None, role="disposition-notification-to")
        )
        return self

    def with_return_receipt_to(
        self, address: AddressLike | None = None, name: str | None = None
    ) -> EmailPopulatingBuilder:
        """Request a delivery receipt, sent to ``address`` or to reply-to/from by default."""
        self.use_return_receipt_to = True
        self.return_receipt_to = (
            None if address is None else _make_recipient(address, name, None, role="return-receipt-to")
        )
        return self

    # ------------------------------------------------------------------ clearing

    def clear_id(self) -> EmailPopulatingBuilder:
        self.id = None
        return self

    def clear_from(self) -> EmailPopulatingBuilder:
        self.from_recipient = None
        return self

    def clear_reply_to(self) -> EmailPopulatingBuilder:
        self.reply_to_recipient = None
        return self

    def clear_bounce_to(self) -> EmailPopulatingBuilder:
        self.bounce_to_recipient = None
        return self

    def clear_recipients(self) -> EmailPopulatingBuilder:
        self.recipients.clear()
        return self

    def clear_subject(self) -> EmailPopulatingBuilder:
        self.subject = None
        return self

    def clear_plain_text(self) -> EmailPopulatingBuilder:
        self.plain_text = None
        return self

    def clear_html_text(self) -> EmailPopulatingBuilder:
        self.html_text = None
        return self

    def clear_calendar_text(self) -> EmailPopulatingBuilder:
        self.calendar_method = None
        self.calendar_text = None
        return self

    def clear_attachments(self) -> EmailPopulatingBuilder:
        self.attachments.clear()
        return self

    def clear_embedded_images(self) -> EmailPopulatingBuilder:
        self.embedded_images.clear()
        return self

    def clear_headers(self) -> EmailPopulatingBuilder:
        self.headers.clear()
        return self

    def clear_disposition_notification_to(self) -> EmailPopulatingBuilder:
        self.use_disposition_notification_to = False
        self.disposition_notification_to = None
        return self

    def clear_return_receipt_to(self) -> EmailPopulatingBuilder:
        self.use_return_receipt_to = False
        self.return_receipt_to = None
        return self

    def clear_forwarding(self) -> EmailPopulatingBuilder:
        self.email_to_forward = None
        return self

    # ------------------------------------------------------------------ terminal

    def build_email(self) -> Email:
        """Snapshot the staged state into an immutable :class:`Email`.

        Notification targets left unset fall back to reply-to, then from.
        The builder stays usable; later changes do not affect built emails.
        """
        fallback = self.reply_to_recipient if self.reply_to_recipient is not None else self.from_recipient
        disposition_target = self.disposition_notification_to
        if self.use_disposition_notification_to and disposition_target is None:
            disposition_target = fallback
        receipt_target = self.return_receipt_to
        if self.use_return_receipt_to and receipt_target is None:
            receipt_target = fallback

        return Email(
            id=self.id,
            from_recipient=self.from_recipient,
            reply_to_recipient=self.reply_to_recipient,
            bounce_to_recipient=self.bounce_to_recipient,
            recipients=tuple(self.recipients),
            plain_text=self.plain_text,
            html_text=self.html_text,
            calendar_method=self.calendar_method,
            calendar_text=self.calendar_text,
            subject=self.subject,
            embedded_images=tuple(self.embedded_images),
            attachments=tuple(self.attachments),
            headers=MappingProxyType(dict(self.headers)),
            use_disposition_notification_to=self.use_disposition_notification_to,
            disposition_notification_to=disposition_target,
            use_return_receipt_to=self.use_return_receipt_to,
            return_receipt_to=receipt_target,
            email_to_forward=self.email_to_forward,
        )


def _quote_plain_text(text: str) -> str:
    return "\n".join(f"> {line}" if line else ">" for line in text.splitlines())


def _reply_subject(subject: str | None) -> str:
    original = subject or ""
    if _REPLY_PREFIX_PATTERN.match(original):
        return original
    return _REPLY_PREFIX + original


def _forward_subject(subject: str | None) -> str:
    original = subject or ""
    if _FORWARD_PREFIX_PATTERN.match(original):
        return original
    return _FORWARD_PREFIX + original


def _references(original: Email) -> str | None:
    previous = original.headers.get("References", "").split()
    if original.id and original.id not in previous:
        previous.append(original.id)
    return " ".join(previous) or None


class EmailBuilder:
    """Entry points for obtaining an :class:`EmailPopulatingBuilder`."""

    @staticmethod
    def starting_blank(defaults: EmailDefaults | None = None) -> EmailPopulatingBuilder:
        """Return an empty builder, pre-populated from ``defaults`` when given."""
        builder = EmailPopulatingBuilder()
        if defaults is None:
            return builder
        builder.from_recipient = defaults.from_recipient
        builder.reply_to_recipient = defaults.reply_to_recipient
        builder.bounce_to_recipient = defaults.bounce_to_recipient
        builder.with_recipients(defaults.recipients)
        builder.subject = defaults.subject
        return builder

    @staticmethod
    def copying(email: Email) -> EmailPopulatingBuilder:
        """Return a builder holding every field of ``email``.

        Notification targets are copied as explicit targets, so a rebuilt
        email resolves to the same recipients.
        """
        return EmailPopulatingBuilder(
            id=email.id,
            from_recipient=email.from_recipient,
            reply_to_recipient=email.reply_to_recipient,
            bounce_to_recipient=email.bounce_to_recipient,
            recipients=list(email.recipients),
            plain_text=email.plain_text,
            html_text=email.html_text,
            calendar_method=email.calendar_method,
            calendar_text=email.calendar_text,
            subject=email.subject,
            embedded_images=list(email.embedded_images),
            attachments=list(email.attachments),
            headers=dict(email.headers),
            use_disposition_notification_to=email.use_disposition_notification_to,
            disposition_notification_to=email.disposition_notification_to,
            use_return_receipt_to=email.use_return_receipt_to,
            return_receipt_to=email.return_receipt_to,
            email_to_forward=email.email_to_forward,
        )

    @staticmethod
    def replying_to(
        original: Email,
        *,
        reply_all: bool = False,
        html_quote_template: str = DEFAULT_QUOTING_MARKUP,
    ) -> EmailPopulatingBuilder:
        """Return a builder for a reply to ``original``.

        Args:
            original: The email being answered, typically parsed by the codec.
            reply_all: Also address the original TO (as TO) and CC (as CC).
            html_quote_template: Markup wrapping the quoted HTML; the first ``{}`` is
                replaced by the original HTML body, other braces are kept as written.

        Returns:
            Builder with subject, recipients, threading headers and quoted
            bodies derived from ``original``. The sender is left unset.
        """
        builder = EmailPopulatingBuilder()
        builder.with_subject(_reply_subject(original.subject))

        reply_target = original.reply_to_recipient or original.from_recipient
        if reply_target is not None:
            builder.to(reply_target)
        if reply_all:
            seen = {reply_target.address.lower()} if reply_target is not None else set()
            for recipient in original.recipients:
                if recipient.type is RecipientType.BCC or recipient.address.lower() in seen:
                    continue
                seen.add(recipient.address.lower())
                builder._add_recipient(recipient, None, recipient.type or RecipientType.TO)

        if original.id:
            builder.with_header("In-Reply-To", original.id)
        references = _references(original)
        if references:
            builder.with_header("References", references)

        if original.plain_text:
            builder.with_plain_text(_quote_plain_text(original.plain_text))
        if original.html_text:
            builder.with_html_text(html_quote_template.replace("{}", original.html_text, 1))
        return builder

    @staticmethod
    def replying_to_all(original: Email) -> EmailPopulatingBuilder:
        return EmailBuilder.replying_to(original, reply_all=True)

    @staticmethod
    def forwarding(message: Message) -> EmailPopulatingBuilder:
        """Return a builder forwarding the wire-format ``message`` as an attachment."""
        builder = EmailPopulatingBuilder()
        builder.with_subject(_forward_subject(str(message.get("Subject", ""))))
        builder.email_to_forward = message
        return builder


__all__ = [
    "DEFAULT_QUOTING_MARKUP",
    "EmailBuilder",
    "EmailDefaults",
    "EmailPopulatingBuilder",
]
