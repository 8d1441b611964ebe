from __future__ import annotations

import logging

from crewfit.core.logging import (
    RequestContextFilter,
    _ContainerFormatter,
    link_code_var,
    request_id_var,
    setup_logging,
)


def _record(level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="svc.py",
        lineno=7,
        msg="hello",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_uvicorn_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_installs_context_filter_on_handler() -> None:
    setup_logging("info")
    assert any(
        isinstance(f, RequestContextFilter)
        for handler in logging.getLogger().handlers
        for f in handler.filters
    )


def test_formatter_location_only_for_warning_and_above() -> None:
    fmt = _ContainerFormatter()
    assert "[svc.py:7]" not in fmt.format(_record(logging.INFO))
    assert "[svc.py:7]" in fmt.format(_record(logging.WARNING))


def test_context_filter_copies_context_vars() -> None:
    rid_token = request_id_var.set("req-1")
    code_token = link_code_var.set("onboarding-pt")
    try:
        record = _record()
        RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(rid_token)
        link_code_var.reset(code_token)
    assert record.request_id == "req-1"  # type: ignore[attr-defined]
    assert record.link_code == "onboarding-pt"  # type: ignore[attr-defined]


def test_context_filter_keeps_explicit_extra() -> None:
    token = link_code_var.set("from-context")
    try:
        record = _record(link_code="explicit")
        RequestContextFilter().filter(record)
    finally:
        link_code_var.reset(token)
    assert record.link_code == "explicit"  # type: ignore[attr-defined]


def test_context_filter_defaults_outside_requests() -> None:
    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
    assert record.link_code is None  # type: ignore[attr-defined]
