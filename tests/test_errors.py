from __future__ import annotations

from prsweep.errors import (
    ConfigError,
    FetchCancelledError,
    FetchError,
    PrSweepError,
    ReferenceParseError,
    classify_error,
    redact,
)


def test_classify_config():
    info = classify_error(ConfigError('invalid throttle "soon"'))
    assert info.category == 'config'
    assert info.transient is False


def test_classify_reference_keeps_token():
    info = classify_error(ReferenceParseError('abc'))
    assert info.category == 'reference'
    assert info.details == {'token': 'abc'}
    assert "invalid PR number or URL 'abc'" == info.message


def test_classify_fetch_names_repository():
    info = classify_error(FetchError('acme/widgets', RuntimeError('HTTP 500')))
    assert info.category == 'fetch'
    assert info.details == {'repository': 'acme/widgets'}
    assert info.message == 'failed to search PRs for acme/widgets: HTTP 500'


def test_classify_rate_limit():
    info = classify_error(FetchError('a/b', 'API Rate Limit Exceeded'))
    assert info.category == 'github.rate_limit'
    assert info.transient is True


def test_classify_network():
    info = classify_error(RuntimeError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'


def test_fetch_error_hierarchy():
    cancelled = FetchCancelledError('timed out after 5s')
    assert isinstance(cancelled, FetchError)
    assert isinstance(cancelled, PrSweepError)
    assert str(cancelled) == 'fetch timed out after 5s'
    assert cancelled.repository == ''
    cause = ValueError()
    assert 'ValueError' in str(FetchError('a/b', cause))
    assert FetchError('a/b', cause).cause is cause


def test_redact_tokens():
    sample = (
        'Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl '
        'and gho_ABCDEFGHIJKLMNOPQRSTUV with Bearer abcdefghijklmnopqrstuvwxyz'
    )
    red = redact(sample)
    assert 'ghp_' not in red
    assert 'github_pat_' not in red
    assert 'gho_' not in red
    assert 'abcdefghijklmnopqrstuvwxyz' not in red
    assert red.count('<redacted>') == 4


def test_fetch_error_message_is_redacted():
    info = classify_error(FetchError('a/b', 'bad credentials ghp_ABCDEFGHIJKLMNOPQRSTUVWX'))
    assert 'ghp_' not in info.message
