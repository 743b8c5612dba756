from __future__ import annotations

import pytest

from fakes import FakeMailbox
from services.gmail_service import GmailService


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def gmail(mailbox: FakeMailbox) -> GmailService:
    return GmailService(mailbox)
