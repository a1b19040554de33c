"""
Tests for the active stream registry.
"""

import pytest

from streamgate.exceptions import ValidationError
from streamgate.streaming.registry import ActiveStreamRegistry


class TestActiveStreamRegistry:
    """Test stream registration and cancellation."""

    @pytest.fixture
    def registry(self) -> ActiveStreamRegistry:
        return ActiveStreamRegistry()

    def test_open_generates_id(self, registry: ActiveStreamRegistry) -> None:
        """Test an id is generated when none is given."""
        stream_id, token = registry.open()

        assert stream_id
        assert token.is_cancelled is False
        assert registry.active_ids() == [stream_id]

    def test_open_with_client_id(self, registry: ActiveStreamRegistry) -> None:
        """Test a client-chosen id is kept."""
        stream_id, _ = registry.open("tab-1")

        assert stream_id == "tab-1"

    def test_duplicate_id_rejected(self, registry: ActiveStreamRegistry) -> None:
        """Test an id in use cannot be opened twice."""
        registry.open("tab-1")

        with pytest.raises(ValidationError, match="already in use"):
            registry.open("tab-1")

    def test_cancel_sets_token_once(self, registry: ActiveStreamRegistry) -> None:
        """Test cancel reaches the stream's token."""
        stream_id, token = registry.open()

        assert registry.cancel(stream_id, "Stopped") is True
        assert registry.cancel(stream_id, "Again") is False
        assert token.is_cancelled is True
        assert token.reason == "Stopped"

    def test_cancel_unknown_stream(self, registry: ActiveStreamRegistry) -> None:
        """Test unknown ids are reported, not raised."""
        assert registry.cancel("missing") is False

    def test_close_forgets_stream(self, registry: ActiveStreamRegistry) -> None:
        """Test closed streams can no longer be cancelled."""
        stream_id, _ = registry.open()

        registry.close(stream_id)
        registry.close(stream_id)

        assert len(registry) == 0
        assert registry.cancel(stream_id) is False
