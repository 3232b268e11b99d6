"""Tests for locating the upstream cookie set."""

import json

import pytest

from grokbridge.core.credentials import (
    Credentials,
    load_credentials,
    load_credentials_file,
    parse_cookie_string,
)
from grokbridge.core.exceptions import CredentialError


def test_parse_cookie_string():
    cookies = parse_cookie_string("sso=abc; sso-rw=def ; x-signature=a=b; junk")
    assert cookies == {"sso": "abc", "sso-rw": "def", "x-signature": "a=b"}


def test_empty_credentials_are_rejected():
    with pytest.raises(CredentialError):
        Credentials({})


def test_missing_lists_expected_cookies():
    credentials = Credentials({"sso": "a", "sso-rw": "b"})
    assert credentials.missing() == ["x-anonuserid", "x-challenge", "x-signature"]


class TestLoadCredentials:
    def test_env_json_wins(self, monkeypatch):
        monkeypatch.setenv("GROK_COOKIES", json.dumps({"sso": "env"}))
        credentials = load_credentials({"credentials": {"cookies": {"sso": "config"}}})
        assert credentials.cookies == {"sso": "env"}

    def test_env_cookie_string(self, monkeypatch):
        monkeypatch.setenv("GROK_COOKIES", "sso=env; sso-rw=env2")
        assert load_credentials().cookies == {"sso": "env", "sso-rw": "env2"}

    def test_invalid_env_json_raises(self, monkeypatch):
        monkeypatch.setenv("GROK_COOKIES", "{broken")
        with pytest.raises(CredentialError, match="invalid cookie JSON"):
            load_credentials()

    def test_config_cookie_mapping(self):
        credentials = load_credentials({"credentials": {"cookies": {"sso": "config"}}})
        assert credentials.cookies == {"sso": "config"}

    def test_config_cookie_string(self):
        credentials = load_credentials({"credentials": {"cookie_string": "sso=config"}})
        assert credentials.cookies == {"sso": "config"}

    def test_credentials_file(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"sso": "file", "x-challenge": "c"}), encoding="utf-8")
        credentials = load_credentials({"credentials": {"credentials_file": str(path)}})
        assert credentials.cookies == {"sso": "file", "x-challenge": "c"}

    def test_no_source_raises(self, tmp_path):
        config = {"credentials": {"cookie_string": "", "credentials_file": str(tmp_path / "none.json")}}
        with pytest.raises(CredentialError, match="no credentials found"):
            load_credentials(config)


def test_credentials_file_must_be_object(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(CredentialError, match="JSON object"):
        load_credentials_file(path)


def test_unreadable_credentials_file(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{nope", encoding="utf-8")
    with pytest.raises(CredentialError, match="cannot read"):
        load_credentials_file(path)
