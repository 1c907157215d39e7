from __future__ import annotations

from labelsync.errors import (
    MalformedEnvelopeError,
    ReconciliationError,
    TransportError,
    classify_error,
    redact,
)
from labelsync.github_rest import GitHubAPIError


def test_classify_rate_limit():
    info = classify_error(GitHubAPIError('API Rate Limit Exceeded', status=403))
    assert info.category == 'github.rate_limit'
    assert info.transient is True
    assert info.details == {'status': 403}


def test_classify_abuse():
    info = classify_error(RuntimeError('Abuse detection triggered'))
    assert info.category == 'github.abuse'
    assert info.transient is True


def test_classify_network():
    info = classify_error(RuntimeError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_envelope_and_transport():
    assert classify_error(MalformedEnvelopeError('missing END')).category == 'envelope'
    info = classify_error(GitHubAPIError('failed with 404', status=404))
    assert info.category == 'transport'
    assert info.transient is False
    assert isinstance(GitHubAPIError('x'), TransportError)


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and header Bearer abcdefghijklmnopqrstuvwxyz"
    )
    out = redact(sample)
    assert 'ghp_' not in out
    assert 'github_pat_' not in out
    assert 'abcdefghijklmnop' not in out
    assert '<redacted>' in out


def test_reconciliation_error_carries_each_failure():
    add = GitHubAPIError('add')
    body = GitHubAPIError('body')
    err = ReconciliationError({'add_labels': add, 'update_body': body})
    assert err.add_labels_error is add
    assert err.remove_labels_error is None
    assert err.update_body_error is body
    assert 'add_labels, update_body' in str(err)
