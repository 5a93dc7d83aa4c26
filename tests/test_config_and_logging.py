import logging

import pytest

from bakehouse.config import EnvReader, _normalize_db_url, _resolve_environment
from bakehouse.logging_config import PiiRedactionFilter, _coerce_level


def test_env_reader_parses_typed_values():
    reader = EnvReader({'BATCH': '25', 'RATIO': '0.5', 'FLAG': 'yes', 'BLANK': '   '})

    assert reader.int('BATCH') == 25
    assert reader.float('RATIO') == 0.5
    assert reader.bool('FLAG') is True
    assert reader.str('BLANK', 'fallback') == 'fallback'
    assert reader.warnings == []


def test_env_reader_collects_warnings_instead_of_failing():
    reader = EnvReader({'DOMAIN_EVENT_BATCH_SIZE': 'many', 'LOG_REDACT_PII': 'maybe'})

    assert reader.int('DOMAIN_EVENT_BATCH_SIZE', 100) == 100
    assert reader.bool('LOG_REDACT_PII', True) is True
    assert len(reader.warnings) == 2


def test_invalid_environment_name_is_rejected():
    with pytest.raises(RuntimeError):
        _resolve_environment(EnvReader({'FLASK_ENV': 'staging'}))
    assert _resolve_environment(EnvReader({'FLASK_ENV': ' Testing '})).name == 'testing'


def test_postgres_scheme_is_normalized():
    assert _normalize_db_url('postgres://u:p@db/bakery') == 'postgresql://u:p@db/bakery'
    assert _normalize_db_url(None) is None


def test_pii_filter_masks_emails_and_secrets():
    record = logging.LogRecord(
        'bakehouse.test', logging.INFO, __file__, 1,
        'Assigned to %s with token=%s', ('baker@example.com', 'abc123'), None,
    )

    assert PiiRedactionFilter().filter(record) is True
    assert record.getMessage() == 'Assigned to [REDACTED_EMAIL] with token=[REDACTED]'


def test_log_level_coercion():
    assert _coerce_level('debug') == logging.DEBUG
    assert _coerce_level(logging.ERROR) == logging.ERROR
    assert _coerce_level('nonsense') == logging.INFO


def test_app_uses_testing_overrides(app):
    assert app.config['TESTING'] is True
    assert app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///')
    assert 'pool_size' not in app.config['SQLALCHEMY_ENGINE_OPTIONS']
    assert 'production_service' in app.extensions
