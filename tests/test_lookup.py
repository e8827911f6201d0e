import json
from unittest import mock

from kanbot.lookup import GUESS_API, guess, parse_guess


def test_parse_trans():
    payload = json.dumps([{"name": "yyds", "trans": ["永远的神", "yyds"]}])
    assert parse_guess(payload) == ["永远的神", "yyds"]


def test_parse_inputting_when_no_trans():
    payload = json.dumps([{"name": "xswl", "inputting": ["笑死我了"]}]).encode("utf-8")
    assert parse_guess(payload) == ["笑死我了"]


def test_trans_preferred_over_inputting():
    payload = json.dumps([{"trans": ["a"], "inputting": ["b"]}])
    assert parse_guess(payload) == ["a"]


def test_parse_empty_and_invalid():
    assert parse_guess("[]") == []
    assert parse_guess("not json") == []
    assert parse_guess(json.dumps([{"name": "x"}])) == []


def test_guess_posts_form():
    body = json.dumps([{"name": "abc", "trans": ["one", "two"]}]).encode("utf-8")
    response = mock.Mock(content=body)
    with mock.patch("kanbot.lookup.requests.post", return_value=response) as post:
        result = guess("abc")
    assert result == ["one", "two"]
    args, kwargs = post.call_args
    assert args[0] == GUESS_API
    assert kwargs["data"] == {"text": "abc"}