"""
Logging setup for the geofence engine.

loguru is the only sink. Records from the stdlib ``logging`` module
(jsonschema and host applications) are routed into it, and every engine
logger carries a ``name`` extra so console lines show the component that
wrote them. Console output goes to stderr; stdout belongs to the CLI.
"""

from __future__ import annotations
import logging
import sys
from typing import Optional, TextIO
from loguru import logger

from geofence_engine.settings import Observability

# ---- stdlib logging → loguru 인터셉트 ----
class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        (
            logger.opt(depth=6, exception=record.exc_info)
            .bind(name=record.name)
            .log(level, record.getMessage())
        )

STDLIB_LOGGERS = ("jsonschema", "asyncio")

def _hook_stdlib_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in STDLIB_LOGGERS:
        l = logging.getLogger(name)
        l.handlers = [InterceptHandler()]
        l.propagate = False

# ---- 콘솔 포맷 ----
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<magenta>{extra[service]}</magenta> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)

def setup_logging(obs: Optional[Observability] = None, sink: Optional[TextIO] = None) -> int:
    """
    관측성 설정으로 loguru를 초기화합니다.

    Args:
        obs: 서비스 이름과 로그 레벨 (None이면 기본값)
        sink: 출력 대상 (기본 stderr)

    Returns:
        추가된 sink의 ID
    """
    obs = obs or Observability()
    out = sink or sys.stderr
    logger.remove()
    logger.configure(extra={"service": obs.service_name, "name": "geofence"})
    sink_id = logger.add(
        sink=lambda m: print(m, end="", file=out),
        format=CONSOLE_FORMAT,
        colorize=sink is None,
        backtrace=True,
        diagnose=False,
        level=obs.log_level.upper(),
        enqueue=False,
    )
    _hook_stdlib_logging()
    return sink_id

def setup_logging_dev(log_level: str = "INFO") -> int:
    """레벨만 지정하는 개발용 단축 함수"""
    return setup_logging(Observability(log_level=log_level))

def get_logger(name: str = "geofence", **ctx):
    """name과 추가 컨텍스트를 바인딩한 logger 반환."""
    return logger.bind(name=name, **ctx)
