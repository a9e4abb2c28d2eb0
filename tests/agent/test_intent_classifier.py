"""
Tests for the send-vs-ask document classifier.
"""

import pytest

from src.merchdesk.agent.domain.entities import DocumentIntent
from src.merchdesk.agent.orchestrator import DocumentRequestClassifier


@pytest.fixture
def classifier():
    return DocumentRequestClassifier()


class TestSendDocument:
    """Messages that explicitly ask for the document."""

    @pytest.mark.parametrize(
        "text",
        [
            "Please resend my quote",
            "Can you re-send the invoice?",
            "Send it again please",
            "Can I get a copy of my invoice",
            "I need the PDF",
            "Please send me my quote",
            "Email me the invoice",
            "Could you forward the quotation to me",
            "Get me my invoice please",
            "Can you send me the PDF with the updated prices?",
        ],
    )
    def test_send_requests(self, classifier, text):
        assert classifier.classify(text) == DocumentIntent.SEND_DOCUMENT
        assert classifier.wants_document(text)


class TestAskAboutContent:
    """Messages about the document's contents."""

    @pytest.mark.parametrize(
        "text",
        [
            "What's the total on my quote?",
            "How many mugs are on my invoice?",
            "Can I get an update on invoice INV-Q100-ABCDE?",
            "What is the status of my order?",
            "Does my quote include delivery?",
            "Tell me about my quote",
            "I want to know the total on my quote PDF",
            "What's the total on the invoice PDF I have?",
            "How many items are on the copy you sent? I need to check",
            "",
            "   ",
        ],
    )
    def test_content_questions(self, classifier, text):
        assert classifier.classify(text) == DocumentIntent.ASK_ABOUT_CONTENT
        assert not classifier.wants_document(text)

    def test_resend_beats_content_keywords(self, classifier):
        """An explicit resend wins even when content words appear."""
        assert classifier.classify("Please resend the quote with the updated total") == (
            DocumentIntent.SEND_DOCUMENT
        )
