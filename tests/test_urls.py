# File: tests/test_urls.py
import pytest

from site_lens.crawler.urls import normalize_url, origin_of, same_origin
from site_lens.errors import MalformedUrl


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("HTTP://Example.COM", "http://example.com/"),
        ("http://example.com:80/a/", "http://example.com/a"),
        ("https://example.com:443/", "https://example.com/"),
        ("http://example.com:8080/x", "http://example.com:8080/x"),
        ("http://example.com/a/./b/../c", "http://example.com/a/c"),
        ("http://example.com/page#section", "http://example.com/page"),
        ("http://example.com/s?b=2&a=1", "http://example.com/s?a=1&b=2"),
        ("http://example.com//double//slash/", "http://example.com/double/slash"),
        ("http://example.com/%7Euser", "http://example.com/~user"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


def test_normalize_is_idempotent():
    url = "https://Example.com:443/a/b/?z=1&y=2#frag"
    once = normalize_url(url)
    assert normalize_url(once) == once


@pytest.mark.parametrize(
    "raw",
    ["ftp://example.com/file", "mailto:someone@example.com", "http:///nohost", "http://example.com:99999/"],
)
def test_normalize_rejects_malformed(raw):
    with pytest.raises(MalformedUrl):
        normalize_url(raw)


def test_origin_uses_default_ports():
    assert origin_of("http://example.com/a") == ("http", "example.com", 80)
    assert origin_of("https://example.com:8443/") == ("https", "example.com", 8443)


def test_same_origin():
    origin = origin_of("http://example.com/")
    assert same_origin("http://example.com:80/x", origin)
    assert not same_origin("https://example.com/x", origin)
    assert not same_origin("http://sub.example.com/", origin)
    assert not same_origin("not a url", origin)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("http://example.com/a%2fb", "http://example.com/a%2Fb"),
        ("http://example.com/%FF", "http://example.com/%FF"),
        ("http://example.com/a b", "http://example.com/a%20b"),
        ("http://example.com/100%", "http://example.com/100%25"),
        ("http://example.com/s?q=%ff&p=a%2Fb", "http://example.com/s?p=a%2Fb&q=%FF"),
        ("http://example.com/s?q=a+b&flag", "http://example.com/s?flag&q=a+b"),
    ],
)
def test_normalize_keeps_reserved_and_undecodable_escapes(raw, expected):
    assert normalize_url(raw) == expected
    assert normalize_url(expected) == expected


def test_escaped_slash_is_a_different_resource():
    assert normalize_url("http://example.com/a%2Fb") != normalize_url("http://example.com/a/b")
