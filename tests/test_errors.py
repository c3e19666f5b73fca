from __future__ import annotations

from parentlink.errors import (
    FieldNotFoundError,
    IdempotencyMismatchError,
    NotFoundError,
    ResponseShapeError,
    classify_error,
    redact,
)
from parentlink.github_graphql import GraphQLError


def test_classify_rate_limit():
    info = classify_error(RuntimeError('API Rate Limit Exceeded'))
    assert info.category == 'github.rate_limit'
    assert info.transient is True


def test_classify_abuse():
    info = classify_error(RuntimeError('Abuse detection triggered'))
    assert info.category == 'github.abuse'
    assert info.transient is True


def test_classify_network():
    info = classify_error(RuntimeError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_typed_errors():
    assert classify_error(IdempotencyMismatchError('a', 'b')).category == 'idempotency'
    assert classify_error(FieldNotFoundError('no field')).category == 'not_found'
    assert classify_error(NotFoundError('no project')).category == 'not_found'
    assert classify_error(ResponseShapeError('missing id')).category == 'shape'
    assert classify_error(GraphQLError([{'type': 'NOT_FOUND'}])).category == 'not_found'


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'
    assert info.original_type == 'ValueError'


def test_field_not_found_is_not_found():
    assert issubclass(FieldNotFoundError, NotFoundError)


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and header Authorization: Bearer abcdef123456789"
    )
    out = redact(sample)
    assert 'ghp_' not in out
    assert 'github_pat_' not in out
    assert 'abcdef123456789' not in out
    assert '<redacted>' in out


def test_classify_redacts_message():
    info = classify_error(RuntimeError('failed with token gho_ABCDEFGHIJKLMNOPQRSTUVWX'))
    assert 'gho_' not in info.message
