"""
Document request classifier.

Decides whether a customer message explicitly asks for a document to be
(re)sent or asks about its contents. Only the former gets the document
attached to the reply.
"""

from __future__ import annotations

import re

from ..domain.entities import DocumentIntent

# Rules are checked in order; the first match wins.
_RESEND = re.compile(
    r"\b(re-?send|send\s+(it|that|this|them)?\s*again|send\s+.{0,30}\bagain)\b",
    re.IGNORECASE,
)
_COPY_OR_PDF = re.compile(r"\b(pdf|copy)\b", re.IGNORECASE)
_REQUEST_VERB = re.compile(
    r"\b(send|get|need|want|email|e-mail|share|forward|attach|have)\b",
    re.IGNORECASE,
)
_CONTENT_QUESTION = re.compile(
    r"\b(what|what's|whats|how\s+much|how\s+many|which|when|where|total|amount|"
    r"price|prices|cost|items?|quantity|quantities|details|status|update|"
    r"breakdown|include|includes|included)\b",
    re.IGNORECASE,
)
_SEND_VERB = re.compile(
    r"\b(send|email\s+me|e-mail\s+me|forward|share|get\s+(me\s+)?(my|the))\b",
    re.IGNORECASE,
)
_DOCUMENT_NOUN = re.compile(
    r"\b(quote|quotation|invoice|document|documents|pdf|statement|receipt)s?\b",
    re.IGNORECASE,
)


class DocumentRequestClassifier:
    """Classifies a customer message as SEND_DOCUMENT or ASK_ABOUT_CONTENT.

    Usage:
        classifier = DocumentRequestClassifier()
        classifier.classify("Please resend my quote PDF")   # SEND_DOCUMENT
        classifier.classify("What's the total on my quote?")  # ASK_ABOUT_CONTENT
    """

    def classify(self, text: str) -> DocumentIntent:
        if not text or not text.strip():
            return DocumentIntent.ASK_ABOUT_CONTENT

        if _RESEND.search(text):
            return DocumentIntent.SEND_DOCUMENT

        if _COPY_OR_PDF.search(text) and _SEND_VERB.search(text):
            return DocumentIntent.SEND_DOCUMENT

        if _CONTENT_QUESTION.search(text):
            return DocumentIntent.ASK_ABOUT_CONTENT

        # "Can I get a copy", "I need the PDF"
        if _COPY_OR_PDF.search(text) and _REQUEST_VERB.search(text):
            return DocumentIntent.SEND_DOCUMENT

        if _SEND_VERB.search(text) and _DOCUMENT_NOUN.search(text):
            return DocumentIntent.SEND_DOCUMENT

        return DocumentIntent.ASK_ABOUT_CONTENT

    def wants_document(self, text: str) -> bool:
        return self.classify(text) == DocumentIntent.SEND_DOCUMENT
