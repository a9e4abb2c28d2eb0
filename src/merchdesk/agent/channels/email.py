"""
Email channel adapter.

The email envelope supplies its own greeting, signature and footer, so any
greeting or sign-off the model still writes is stripped before wrapping.
"""

from __future__ import annotations

import html
import re
from typing import Optional

from ..domain.entities import AgentResponse, Attachment, Channel, ChannelContext
from .base import ChannelAdapter, ChannelPayload

_GREETING = re.compile(
    r"^(dear|hi|hello|hey|greetings|good (morning|afternoon|evening))\b[^\n.,!?]{0,40}[,!]?\s*$",
    re.IGNORECASE,
)
_SIGN_OFF = re.compile(
    r"^(best regards|kind regards|warm regards|regards|sincerely|yours sincerely|"
    r"many thanks|thanks|thank you|cheers)[,!.]?\s*$",
    re.IGNORECASE,
)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"\*(.+?)\*")
_NUMBERED = re.compile(r"^\s*\d+\.\s+(.+)$")

# Sign-off line plus up to this many trailing name/title lines
_MAX_SIGNATURE_LINES = 3
_MAX_SIGNATURE_LINE_LENGTH = 40

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body {{ font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
    .greeting {{ margin-bottom: 20px; }}
    .content {{ margin-bottom: 20px; }}
    .attachments {{ margin-bottom: 20px; }}
    .signature {{ margin-top: 30px; padding-top: 20px; border-top: 1px solid #e0e0e0; }}
    ol, ul {{ margin: 10px 0; padding-left: 30px; }}
  </style>
</head>
<body>
  <div class="greeting">{greeting}</div>
  <div class="content">
{content}
  </div>
{attachments}  <div class="signature">
    <p>Best regards,<br>
    <strong>{assistant_name}</strong></p>
    <p style="font-size: 12px; color: #666; margin-top: 20px;">{footer}</p>
  </div>
</body>
</html>"""


def _is_signature_line(line: str) -> bool:
    line = line.strip()
    return len(line) <= _MAX_SIGNATURE_LINE_LENGTH and not line.endswith((".", "!", "?", ":"))


def strip_envelope_text(text: str) -> str:
    """Remove a leading greeting line and a trailing sign-off block.

    A sign-off is only removed when everything after it looks like a name or
    title. If stripping would leave nothing, the original text is returned.
    """
    original = text.strip()
    lines = original.splitlines()

    if lines and _GREETING.match(lines[0].strip()):
        lines = lines[1:]

    for index in range(len(lines) - 1, -1, -1):
        if _SIGN_OFF.match(lines[index].strip()):
            trailing = [line for line in lines[index + 1:] if line.strip()]
            if len(trailing) <= _MAX_SIGNATURE_LINES and all(_is_signature_line(line) for line in trailing):
                lines = lines[:index]
            break

    return "\n".join(lines).strip() or original


def markdown_to_html(text: str) -> str:
    """Convert the small markdown subset the model uses into HTML.

    Handles bold, italic, numbered lists and line breaks. Text is escaped
    before conversion.
    """
    blocks: list[str] = []
    list_items: list[str] = []

    def flush_list() -> None:
        if list_items:
            blocks.append("<ol>" + "".join(f"<li>{item}</li>" for item in list_items) + "</ol>")
            list_items.clear()

    for raw_line in text.splitlines():
        line = html.escape(raw_line)
        line = _BOLD.sub(r"<strong>\1</strong>", line)
        line = _ITALIC.sub(r"<em>\1</em>", line)

        numbered = _NUMBERED.match(line)
        if numbered:
            list_items.append(numbered.group(1))
            continue

        flush_list()
        blocks.append(line + "<br>")

    flush_list()
    return "\n".join(blocks)


class EmailChannelAdapter(ChannelAdapter):
    """Email channel keyed by the sender's address."""

    channel = Channel.EMAIL

    def identity(self, context: ChannelContext) -> Optional[str]:
        return context.email

    def session_id_for(self, identity: str) -> str:
        return f"{self.session_prefix}-EMAIL-{identity.strip().lower()}"

    def build_context(
        self,
        session_id: str,
        text: str,
        channel_identity: Optional[str],
        customer_name: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> ChannelContext:
        email = channel_identity.strip().lower() if channel_identity else None
        return ChannelContext(
            channel=self.channel,
            session_id=session_id,
            original_message=text,
            email=email or None,
            customer_name=customer_name,
            subject=subject,
        )

    def compose_customer_message(self, context: ChannelContext) -> str:
        # The subject often carries the reference number
        if context.subject:
            return f"Subject: {context.subject}\n\n{context.original_message}"
        return context.original_message

    @property
    def assistant_name(self) -> str:
        return f"{self.company_name} AI Assistant"

    @property
    def footer(self) -> str:
        return (
            f"This is an automated response from {self.company_name}'s AI assistant. "
            "If you need to speak with a human representative, please reply to this "
            "email or contact us directly."
        )

    def build_subject(self, context: ChannelContext) -> str:
        subject = (context.subject or "").strip()
        if not subject:
            return "Re: Your Inquiry"
        if subject.lower().startswith("re:"):
            return subject
        return f"Re: {subject}"

    def render(self, response: AgentResponse, context: ChannelContext) -> ChannelPayload:
        body = strip_envelope_text(response.text)
        greeting = f"Dear {context.customer_name}," if context.customer_name else "Hello,"

        return ChannelPayload(
            channel=self.channel,
            recipient=context.email or "",
            subject=self.build_subject(context),
            html_body=self._render_html(greeting, body, response.attachments),
            plain_text_body=self._render_plain_text(greeting, body, response.attachments),
            attachments=list(response.attachments),
        )

    def _render_html(self, greeting: str, body: str, attachments: list[Attachment]) -> str:
        attachment_html = ""
        if attachments:
            links = "".join(
                f'<li><a href="{html.escape(a.url, quote=True)}">{html.escape(a.caption or a.url)}</a></li>'
                for a in attachments
            )
            attachment_html = f'  <div class="attachments"><p>Documents:</p><ul>{links}</ul></div>\n'

        return _HTML_TEMPLATE.format(
            greeting=html.escape(greeting),
            content=markdown_to_html(body),
            attachments=attachment_html,
            assistant_name=html.escape(self.assistant_name),
            footer=html.escape(self.footer),
        )

    def _render_plain_text(self, greeting: str, body: str, attachments: list[Attachment]) -> str:
        parts = [greeting, "", body]
        if attachments:
            parts += ["", "Documents:"]
            parts += [f"- {a.caption or 'Document'}: {a.url}" for a in attachments]
        parts += ["", "Best regards,", self.assistant_name, "", "---", self.footer]
        return "\n".join(parts)
