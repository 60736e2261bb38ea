"""
로깅 설정 단위 테스트

이 모듈은 loguru 초기화, stdlib 로그 인터셉트, 로거 바인딩을 테스트합니다.
"""

import io
import logging
from unittest.mock import Mock, patch

from geofence_engine.observability.logging_setup import (
    InterceptHandler,
    get_logger,
    setup_logging,
    setup_logging_dev,
)
from geofence_engine.settings import Observability


class TestInterceptHandler:
    """InterceptHandler 테스트"""

    def _record(self, levelname, levelno, exc_info=None):
        record = Mock()
        record.name = "jsonschema"
        record.levelname = levelname
        record.levelno = levelno
        record.getMessage.return_value = "Test message"
        record.exc_info = exc_info
        return record

    def test_emit(self):
        """loguru로 전달되고 stdlib 로거 이름이 바인딩됨"""
        handler = InterceptHandler()

        with patch("geofence_engine.observability.logging_setup.logger") as mock_logger:
            handler.emit(self._record("INFO", 20))

            mock_logger.opt.assert_called_once()
            bound = mock_logger.opt.return_value.bind
            bound.assert_called_once_with(name="jsonschema")
            bound.return_value.log.assert_called_once_with("INFO", "Test message")

    def test_emit_with_exception(self):
        handler = InterceptHandler()
        exc_info = (Exception, Exception("Test error"), None)

        with patch("geofence_engine.observability.logging_setup.logger") as mock_logger:
            handler.emit(self._record("ERROR", 40, exc_info))

            _, kwargs = mock_logger.opt.call_args
            assert kwargs["exception"] == exc_info

    def test_emit_unknown_level_uses_number(self):
        """loguru에 없는 레벨 이름이면 숫자 레벨 사용"""
        handler = InterceptHandler()

        with patch("geofence_engine.observability.logging_setup.logger") as mock_logger:
            mock_logger.level.side_effect = ValueError("unknown level")
            handler.emit(self._record("INVALID", 99))

            mock_logger.opt.return_value.bind.return_value.log.assert_called_once_with(99, "Test message")


class TestSetup:
    """loguru 초기화 테스트"""

    def test_setup_logging_writes_to_sink(self, sample_settings):
        out = io.StringIO()
        setup_logging(sample_settings.observability, sink=out)

        get_logger("geofence.test").debug("band regenerated")

        line = out.getvalue()
        assert "test-service" in line
        assert "geofence.test" in line
        assert "band regenerated" in line

    def test_level_filters(self):
        out = io.StringIO()
        setup_logging(Observability(log_level="WARNING"), sink=out)

        get_logger().info("hidden")
        get_logger().warning("shown")

        assert "hidden" not in out.getvalue()
        assert "shown" in out.getvalue()

    def test_stdlib_records_intercepted(self):
        out = io.StringIO()
        setup_logging(Observability(), sink=out)

        logging.getLogger("jsonschema").warning("schema warning")

        assert "schema warning" in out.getvalue()

    def test_setup_logging_dev(self):
        with patch("logging.basicConfig") as mock_basic_config:
            setup_logging_dev("DEBUG")

            mock_basic_config.assert_called_once()


def test_get_logger_binds_context():
    bound = get_logger("geofence.engine", structure="HALL")
    assert bound is not None
    assert hasattr(bound, "info")
