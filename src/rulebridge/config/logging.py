"""Route rulebridge's stdlib loggers through structlog.

Every module logs with ``logging.getLogger(__name__)`` and %-style
messages, so all records live under the ``rulebridge.*`` hierarchy
(translation failures, reconcile counts, repository writes). One stderr
handler on the root logger renders them, either as console lines or as
JSON objects with ``--log-json``. ``-v`` opens ``rulebridge.*`` to DEBUG;
``sqlalchemy.engine`` stays at WARNING so statement echo never mixes
into command output.
"""

from __future__ import annotations

import logging
import sys

import structlog

PACKAGE_LOGGER = "rulebridge"
QUIET_LOGGERS = ("sqlalchemy.engine",)


def _shared_processors() -> list[structlog.types.Processor]:
    # Applied to structlog events and to foreign stdlib records alike.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler and set the rulebridge logger levels.

    Args:
        verbose: Let ``rulebridge.*`` records through from DEBUG up.
            Otherwise only WARNING and above are shown.
        log_json: Render one JSON object per record.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
