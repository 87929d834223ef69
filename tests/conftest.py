from __future__ import annotations

from typing import Any

import pytest

from core.session import Session
from kernel import Context


@pytest.fixture(autouse=True)
def _default_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Point the config loader at a missing file so every test sees the defaults."""

    import core.config_manager as config_manager

    monkeypatch.setenv(config_manager.CONFIG_ENV, str(tmp_path / "missing-config.yml"))
    monkeypatch.setattr(config_manager, "_cached_config", None)


@pytest.fixture
def root() -> Context:
    return Context()


class Replies(list):
    """Collects everything sent through sessions created by `make_session`."""


@pytest.fixture
def replies() -> Replies:
    return Replies()


@pytest.fixture
def make_session(replies: Replies):
    def _make(content: str, **kwargs: Any) -> Session:
        return Session(
            platform="test",
            user_id=kwargs.pop("user_id", "u1"),
            content=content,
            send=replies.append,
            **kwargs,
        )

    return _make
