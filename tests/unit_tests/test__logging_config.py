import logging

import pytest

from storeit_api.logging_config import SensitiveDataFilter, configure_logging


def make_record(msg, args=()):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.parametrize(
    "message, secret",
    [
        ('{"password": "hunter22"}', "hunter22"),
        ("refresh token=abc.def.ghi", "abc.def.ghi"),
        ("Authorization: Bearer eyJhbGciOi", "eyJhbGciOi"),
        ("reset code=123456", "123456"),
    ],
)
def test_sensitive_values_are_masked(message, secret):
    record = make_record(message)
    assert SensitiveDataFilter().filter(record)
    assert secret not in record.getMessage()
    assert "***MASKED***" in record.getMessage()


def test_arguments_are_masked():
    record = make_record("login with %s", ("password=hunter22",))
    SensitiveDataFilter().filter(record)
    assert "hunter22" not in record.getMessage()


def test_plain_messages_pass_through():
    record = make_record("Uploaded notes.txt (5 bytes)")
    SensitiveDataFilter().filter(record)
    assert record.getMessage() == "Uploaded notes.txt (5 bytes)"


def test_configure_logging_sets_level_and_filter():
    root = logging.getLogger()
    original_level = root.level
    try:
        configure_logging("warning")
        assert root.level == logging.WARNING
        assert root.handlers
        assert all(any(isinstance(f, SensitiveDataFilter) for f in h.filters) for h in root.handlers)
        assert logging.getLogger("botocore").level == logging.WARNING

        configure_logging("warning")
        assert all(sum(isinstance(f, SensitiveDataFilter) for f in h.filters) == 1 for h in root.handlers)
    finally:
        root.setLevel(original_level)
