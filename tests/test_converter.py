"""MIME codec: Email to EmailMessage and back, .eml text and builder entry points."""

from __future__ import annotations

from email import message_from_string, policy

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mailcraft.adapters.mail.converter import (
    DISPOSITION_NOTIFICATION_TO,
    RETURN_RECEIPT_TO,
    copying_message,
    email_to_eml,
    email_to_message,
    eml_to_email,
    forwarding_message,
    message_to_email,
    replying_to_message,
)
from mailcraft.domain.builder import EmailBuilder
from mailcraft.domain.email import Email
from mailcraft.domain.enums import CalendarMethod, RecipientType
from mailcraft.domain.recipient import BytesDataSource

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _rich_email() -> Email:
    return (
        EmailBuilder.starting_blank()
        .fixing_message_id("<rich@example.com>")
        .from_("sender@example.com", "Sender")
        .with_reply_to("replies@example.com", "Replies")
        .to("ada@example.com", "Ada Lovelace")
        .to("grace@example.com")
        .cc("bob@example.com")
        .bcc("audit@example.com")
        .with_subject("Launch plan")
        .with_plain_text("Plain body")
        .with_html_text('<p>HTML body <img src="cid:logo"></p>')
        .with_embedded_image("logo", BytesDataSource(PNG_BYTES, "image/png"))
        .with_attachment("plan.txt", BytesDataSource(b"step one", "text/plain"))
        .with_attachment("data.bin", BytesDataSource(b"\x00\xff\x10"))
        .with_header("X-Campaign", "launch")
        .with_disposition_notification_to()
        .with_return_receipt_to("receipts@example.com")
        .build_email()
    )


# ======================== email_to_message ========================


@pytest.mark.os_agnostic
def test_headers_carry_participants_and_notifications() -> None:
    """From, Reply-To, recipient groups and receipt headers are written."""
    message = email_to_message(_rich_email())

    assert message["Message-ID"] == "<rich@example.com>"
    assert message["From"] == "Sender <sender@example.com>"
    assert message["Reply-To"] == "Replies <replies@example.com>"
    assert message["To"] == "Ada Lovelace <ada@example.com>, grace@example.com"
    assert message["Cc"] == "bob@example.com"
    assert message["Bcc"] == "audit@example.com"
    assert message[DISPOSITION_NOTIFICATION_TO] == "Replies <replies@example.com>"
    assert message[RETURN_RECEIPT_TO] == "receipts@example.com"
    assert message["X-Campaign"] == "launch"
    assert message["Date"] is not None


@pytest.mark.os_agnostic
def test_message_id_is_generated_when_not_fixed() -> None:
    """Emails without an id get a fresh Message-ID on conversion."""
    email = EmailBuilder.starting_blank().from_("a@example.com").to("b@example.com").build_email()

    first = email_to_message(email)["Message-ID"]
    second = email_to_message(email)["Message-ID"]

    assert first.startswith("<")
    assert first != second


@pytest.mark.os_agnostic
def test_bounce_to_never_appears_in_the_message() -> None:
    """The envelope sender is not a header."""
    email = EmailBuilder.copying(_rich_email()).with_bounce_to("bounces@example.com").build_email()

    assert "bounces@example.com" not in email_to_message(email).as_string()


@pytest.mark.os_agnostic
def test_embedded_image_is_related_to_the_html_body() -> None:
    """Inline images sit next to the HTML part and carry their Content-ID."""
    message = email_to_message(_rich_email())

    related = [part for part in message.walk() if part.get_content_type() == "multipart/related"]
    images = [part for part in message.walk() if part.get_content_type() == "image/png"]
    assert len(related) == 1
    assert images[0]["Content-ID"] == "<logo>"
    assert images[0].get_content() == PNG_BYTES


@pytest.mark.os_agnostic
def test_attachments_keep_name_type_and_bytes() -> None:
    """Each attachment becomes a part with filename and declared type."""
    message = email_to_message(_rich_email())

    attachments = {part.get_filename(): part for part in message.iter_attachments()}
    assert attachments["plan.txt"].get_content_type() == "text/plain"
    assert attachments["data.bin"].get_content_type() == "application/octet-stream"
    assert attachments["data.bin"].get_content() == b"\x00\xff\x10"


@pytest.mark.os_agnostic
def test_calendar_body_carries_its_method() -> None:
    """text/calendar parts are tagged with the iCalendar method."""
    email = (
        EmailBuilder.starting_blank()
        .from_("a@example.com")
        .to("b@example.com")
        .with_calendar_text(CalendarMethod.REQUEST, "BEGIN:VCALENDAR\nEND:VCALENDAR")
        .build_email()
    )

    message = email_to_message(email)

    part = next(part for part in message.walk() if part.get_content_type() == "text/calendar")
    assert part.get_param("method") == "REQUEST"


# ======================== message_to_email ========================


@pytest.mark.os_agnostic
def test_round_trip_keeps_everything_but_bounce_to() -> None:
    """Converting there and back yields an equal email."""
    original = _rich_email()

    parsed = message_to_email(email_to_message(original))

    assert parsed == original


@pytest.mark.os_agnostic
def test_round_trip_through_eml_text() -> None:
    """The .eml rendering parses back to the same email."""
    original = _rich_email()

    assert eml_to_email(email_to_eml(original)) == original


@pytest.mark.os_agnostic
@pytest.mark.parametrize("body", ["hello\n", "line1\r\nline2", "trailing\n\n", "tab\tand trailing space "])
def test_round_trip_keeps_bodies_byte_for_byte(body: str) -> None:
    """Line endings and trailing newlines of every body survive the codec."""
    email = (
        EmailBuilder.starting_blank()
        .fixing_message_id("<bodies@example.com>")
        .from_("a@example.com")
        .to("b@example.com")
        .with_plain_text(body)
        .with_html_text(f"<p>{body}</p>")
        .with_calendar_text(CalendarMethod.REQUEST, body)
        .build_email()
    )

    assert message_to_email(email_to_message(email)) == email


@pytest.mark.os_agnostic
def test_round_trip_keeps_mime_type_parameters() -> None:
    """Declared parameters such as charset stay on attachments and inline images."""
    email = (
        EmailBuilder.starting_blank()
        .fixing_message_id("<params@example.com>")
        .from_("a@example.com")
        .to("b@example.com")
        .with_html_text('<img src="cid:chart">')
        .with_embedded_image("chart", BytesDataSource(b"<svg/>", "image/svg+xml; charset=utf-8"))
        .with_attachment("notes.txt", BytesDataSource("grüße".encode(), "text/plain; charset=utf-8"))
        .build_email()
    )

    parsed = message_to_email(email_to_message(email))

    assert parsed == email
    assert parsed.attachments[0].mime_type == "text/plain; charset=utf-8"


@pytest.mark.os_agnostic
def test_round_trip_regroups_recipients_by_type() -> None:
    """Interleaved TO/CC come back grouped TO first, then CC."""
    email = (
        EmailBuilder.starting_blank()
        .from_("a@example.com")
        .cc("c1@example.com")
        .to("t1@example.com")
        .cc("c2@example.com")
        .build_email()
    )

    parsed = message_to_email(email_to_message(email))

    assert [(r.address, r.type) for r in parsed.recipients] == [
        ("t1@example.com", RecipientType.TO),
        ("c1@example.com", RecipientType.CC),
        ("c2@example.com", RecipientType.CC),
    ]


@pytest.mark.os_agnostic
def test_embedded_image_without_html_round_trips() -> None:
    """An inline image on a plain-text email is still read back as embedded."""
    email = (
        EmailBuilder.starting_blank()
        .from_("a@example.com")
        .to("b@example.com")
        .with_plain_text("see logo")
        .with_embedded_image("logo", BytesDataSource(PNG_BYTES, "image/png"))
        .build_email()
    )

    parsed = message_to_email(email_to_message(email))

    assert parsed.embedded_images == email.embedded_images
    assert parsed.attachments == ()


@pytest.mark.os_agnostic
def test_parsing_a_simple_eml_reads_body_and_headers() -> None:
    """A minimal hand-written message is understood."""
    email = eml_to_email("From: Ann <a@example.com>\nTo: b@example.com\nSubject: Hi\nX-Trace: 7\n\nBody\n")

    assert email.from_recipient is not None
    assert email.from_recipient.name == "Ann"
    assert email.plain_text == "Body\n"
    assert email.headers["X-Trace"] == "7"
    assert email.bounce_to_recipient is None


@pytest.mark.os_agnostic
def test_parsing_bytes_input_is_supported() -> None:
    """eml_to_email accepts raw bytes."""
    email = eml_to_email(b"From: a@example.com\r\nTo: b@example.com\r\n\r\nHello\r\n")

    assert email.recipients[0].address == "b@example.com"


@pytest.mark.os_agnostic
def test_forwarded_message_is_read_back() -> None:
    """A message/rfc822 part becomes email_to_forward."""
    inner = message_from_string("From: x@example.com\nSubject: Inner\n\ninner body\n", policy=policy.default)
    forward = forwarding_message(inner).from_("a@example.com").to("b@example.com").build_email()

    parsed = message_to_email(email_to_message(forward))

    assert parsed.subject == "Fwd: Inner"
    assert parsed.email_to_forward is not None
    assert parsed.email_to_forward["Subject"] == "Inner"


# ======================== Wire-format entry points ========================


@pytest.mark.os_agnostic
def test_copying_message_builds_an_equal_email() -> None:
    """A copy of a wire message holds the same fields."""
    original = _rich_email()

    assert copying_message(email_to_eml(original)).build_email() == original


@pytest.mark.os_agnostic
def test_replying_to_message_uses_the_wire_sender() -> None:
    """Replying to raw text addresses its Reply-To."""
    reply = replying_to_message(email_to_eml(_rich_email()), reply_all=True).build_email()

    assert reply.recipients[0].address == "replies@example.com"
    assert reply.headers["In-Reply-To"] == "<rich@example.com>"
    assert "audit@example.com" not in [r.address for r in reply.recipients]


# ======================== Properties ========================

_address = st.builds(
    lambda local, domain: f"{local}@{domain}",
    st.from_regex(r"[a-z][a-z0-9]{0,10}", fullmatch=True),
    st.from_regex(r"[a-z][a-z0-9]{0,8}\.(com|org|net)", fullmatch=True),
)
_subject = st.from_regex(r"[A-Za-z0-9][A-Za-z0-9 ]{0,40}[A-Za-z0-9]", fullmatch=True)
_text = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "Zs"), max_codepoint=0x2FF),
    min_size=1,
    max_size=60,
).map(str.strip).filter(bool)


@pytest.mark.os_agnostic
@given(sender=_address, to=st.lists(_address, min_size=1, max_size=3), subject=_subject, body=_text)
@settings(max_examples=40, deadline=None)
def test_simple_emails_survive_the_codec(sender: str, to: list[str], subject: str, body: str) -> None:
    """Sender, recipients, subject and a single-line body round-trip unchanged."""
    email = (
        EmailBuilder.starting_blank()
        .from_(sender)
        .to_many(*to)
        .with_subject(subject)
        .with_plain_text(body)
        .build_email()
    )

    parsed = message_to_email(email_to_message(email))

    assert parsed.from_recipient == email.from_recipient
    assert parsed.recipients == email.recipients
    assert parsed.subject == subject
    assert parsed.plain_text == body


@pytest.mark.os_agnostic
@given(content=st.binary(min_size=0, max_size=256))
@settings(max_examples=40, deadline=None)
def test_attachment_bytes_survive_the_codec(content: bytes) -> None:
    """Arbitrary binary attachment content comes back byte for byte."""
    email = (
        EmailBuilder.starting_blank()
        .from_("a@example.com")
        .to("b@example.com")
        .with_plain_text("see attachment")
        .with_attachment("blob.bin", BytesDataSource(content))
        .build_email()
    )

    parsed = message_to_email(email_to_message(email))

    assert parsed.attachments[0].read_bytes() == content
