"""Shared fixtures for the customer-service agent tests."""

import pytest

from src.merchdesk.agent.control import InMemoryHumanControlStore
from src.merchdesk.agent.domain.entities import Channel, ChannelContext
from src.merchdesk.agent.memory import InMemoryTurnStore


@pytest.fixture
def turn_store():
    return InMemoryTurnStore()


@pytest.fixture
def control_store():
    return InMemoryHumanControlStore()


@pytest.fixture
def chat_context():
    return ChannelContext(
        channel=Channel.CHAT,
        session_id="ML-27821234567",
        original_message="Can I get an update on invoice INV-Q100-ABCDE?",
        phone="27821234567",
        customer_name="Jane",
    )


@pytest.fixture
def email_context():
    return ChannelContext(
        channel=Channel.EMAIL,
        session_id="ML-EMAIL-jane@example.com",
        original_message="Please send me my quote.",
        email="jane@example.com",
        customer_name="Jane",
        subject="Quote Q553-HFKTH",
    )
