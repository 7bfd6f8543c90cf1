"""Shared fixtures for the storyboard swarm tests."""

import pytest

from fakes import FakeFactStore, make_pdf
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import PageContent


@pytest.fixture
def sample_context():
    return ContextPacket(
        paper_title="Learning Rates in Practice",
        main_goal="Explain how learning rates affect training",
        themes=["optimization"],
        key_terminology=["learning rate"],
        target_audience="Undergraduates",
        total_pages=3
    )


@pytest.fixture
def sample_page():
    return PageContent(page=2, content="The learning rate scales each gradient step.")


@pytest.fixture
def fake_store():
    return FakeFactStore()


@pytest.fixture
def pdf_bytes():
    return make_pdf(3)
