import pytest

from sync_upstream import actions


@pytest.fixture(autouse=True)
def _clean_action_state(monkeypatch):
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    actions.reset()
    yield
    actions.reset()


@pytest.fixture
def logs(monkeypatch):
    lines = []
    monkeypatch.setattr(actions, "_emit", lines.append)
    return lines
