from urllib.parse import parse_qs, urlsplit

import pytest

from kanbot.moegoe import match_request, speech_url


def _query(url):
    return parse_qs(urlsplit(url).query)


def test_speech_url_japanese():
    assert speech_url("宁宁", "abc") == "https://moegoe.azurewebsites.net/api/speak?text=abc&id=0"


def test_speech_url_escapes_space_as_plus():
    assert "text=a+b&" in speech_url("芳乃", "a b")


def test_speech_url_korean_api_and_id():
    url = speech_url("Arin", "hi")
    assert url.startswith("https://moegoe.azurewebsites.net/api/speakkr?")
    assert _query(url)["id"] == ["2"]


def test_speech_url_chinese_keeps_voice_only_speaker():
    url = speech_url("散兵", "你好")
    assert url.startswith("https://genshin.azurewebsites.net/api/speak?format=mp3&")
    assert _query(url)["id"] == ["36"]


def test_speech_url_round_trips_text():
    text = "こんにちは、世界！"
    assert _query(speech_url("七海", text))["text"] == [text]


def test_speech_url_unknown_speaker():
    with pytest.raises(KeyError):
        speech_url("nobody", "hi")


def test_match_request_chinese():
    assert match_request("让派蒙说你好") == speech_url("派蒙", "你好")


def test_match_request_japanese_with_punctuation():
    assert match_request("让宁宁说はい！") == speech_url("宁宁", "はい！")


def test_match_request_korean():
    url = match_request("让Sua说안녕 hello")
    assert url is not None
    assert _query(url)["text"] == ["안녕 hello"]
    assert _query(url)["id"] == ["0"]


def test_match_request_rejects_latin_for_chinese():
    assert match_request("让派蒙说hello") is None


def test_match_request_speaker_not_in_command():
    assert match_request("让散兵说你好") is None


def test_match_request_needs_text():
    assert match_request("让宁宁说") is None
    assert match_request("随便说说") is None