"""Tests for ErrorHandler logging, events and UI callbacks."""

from __future__ import annotations

import logging
from unittest.mock import Mock

from imageloader.errors import DiskIOFailure, ImageLoaderError, InfrastructureError, NetworkFailure
from imageloader.errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from imageloader.events.bus import EventBus


class TestHierarchy:
    def test_infrastructure_errors_share_base(self):
        assert issubclass(DiskIOFailure, InfrastructureError)
        assert issubclass(NetworkFailure, ImageLoaderError)


class TestErrorHandler:
    def test_logs_with_context(self, caplog):
        handler = ErrorHandler(logging.getLogger("test.errors"))
        with caplog.at_level(logging.WARNING, logger="test.errors"):
            handler.handle(DiskIOFailure("full"), ErrorSeverity.WARNING, {"url": "u", "tier": "disk"})
        assert "DiskIOFailure: full [url=u, tier=disk]" in caplog.text

    def test_publishes_event(self):
        bus = EventBus()
        received = []
        bus.subscribe(ErrorOccurredEvent, received.append)
        handler = ErrorHandler(logging.getLogger("test.errors"), bus)
        error = NetworkFailure("timeout")

        handler.handle(error, ErrorSeverity.WARNING, {"url": "u"})

        assert len(received) == 1
        assert received[0].error is error
        assert received[0].severity is ErrorSeverity.WARNING
        assert received[0].context == {"url": "u"}

    def test_ui_callback_only_for_severe(self):
        handler = ErrorHandler(logging.getLogger("test.errors"))
        callback = Mock()
        handler.register_ui_callback(callback)

        handler.handle(NetworkFailure("minor"), ErrorSeverity.WARNING)
        callback.assert_not_called()

        handler.handle(NetworkFailure("major"), ErrorSeverity.CRITICAL)
        callback.assert_called_once_with("major", ErrorSeverity.CRITICAL)
