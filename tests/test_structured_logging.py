import json
import logging

from lincli.logging import StructuredLogger, configure_logging, get_logger


def test_structured_logger_json_format(capsys):
    """JSON mode emits one parseable record per line on stderr."""
    logger = StructuredLogger(name='test', json_logging=True, level='INFO')
    logger.log_operation('test_operation', param1='value1', param2=42)

    captured = capsys.readouterr()
    assert captured.out == ''
    log_lines = [line for line in captured.err.strip().split('\n') if line]

    assert len(log_lines) == 1
    entry = json.loads(log_lines[0])
    assert entry['operation'] == 'test_operation'
    assert entry['param1'] == 'value1'
    assert entry['param2'] == 42
    assert entry['level'] == 'INFO'


def test_structured_logger_respects_level(capsys):
    logger = StructuredLogger(name='test-level', level='WARNING')
    logger.info('hidden')
    logger.warning('shown')

    err = capsys.readouterr().err
    assert 'hidden' not in err
    assert 'shown' in err
    assert logger.level == logging.WARNING


def test_log_error_redacts_tokens(capsys):
    logger = StructuredLogger(name='test-redact', json_logging=True, level='ERROR')
    logger.log_error('request failed', error='bad token lin_api_ABCDEFGHIJKLMNOPQRST')

    entry = json.loads(capsys.readouterr().err.strip())
    assert entry['error'] == 'bad token <redacted>'


def test_performance_record_rounds_duration(capsys):
    logger = StructuredLogger(name='test-perf', json_logging=True, level='INFO')
    logger.log_performance('graphql_request', 12.3456, status=200)

    entry = json.loads(capsys.readouterr().err.strip())
    assert entry['duration_ms'] == 12.35
    assert entry['status'] == 200


def test_configure_logging_replaces_global():
    configured = configure_logging(json_logging=False, level='DEBUG')

    assert get_logger() is configured
    assert configured.level == logging.DEBUG
    configure_logging()
