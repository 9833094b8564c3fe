# tests/test_binder.py
"""
Tests for the struct binder.

Covers:
    - env > automatic env > document precedence
    - case-insensitive document keys
    - deep environment binding into sections missing from the document
    - numeric, boolean and sequence decoding
    - InvalidTarget / CoercionError and the silent-skip rules
"""

import pytest

from confbind import CoercionError, EnvResolver, InvalidTarget, Replacer, normalize_keys
from confbind.binder import bind
from confbind.provenance import ProvenanceStore

from sample_targets import (
    ApiConfig,
    Config,
    Frozen,
    Lazy,
    NeedsRequired,
    Renamed,
    Scalars,
    Unresolvable,
)


@pytest.fixture
def resolver():
    return EnvResolver(environ={})


def auto_resolver(environ):
    r = EnvResolver(environ=environ)
    r.automatic_env(Replacer(".", "_"))
    return r


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestPrecedence:

    def test_document_value_used_without_env(self, resolver):
        cfg = Config()
        bind({"db": {"url": "postgres://from-config"}}, cfg, resolver)
        assert cfg.db.url == "postgres://from-config"

    def test_explicit_binding_overrides_document(self):
        r = EnvResolver(environ={"DATABASE_URL": "postgres://from-env"})
        r.bind_env("db.url", "DATABASE_URL")
        cfg = Config()
        bind({"db": {"url": "postgres://from-config"}}, cfg, r)
        assert cfg.db.url == "postgres://from-env"

    def test_automatic_env_overrides_document(self):
        cfg = Config()
        bind({"http": {"port": 8080}}, cfg, auto_resolver({"HTTP_PORT": "9091"}))
        assert cfg.http.port == 9091

    def test_explicit_binding_beats_automatic_env(self):
        r = auto_resolver({"DB_URL": "auto", "DATABASE_URL": "explicit"})
        r.bind_env("db.url", "DATABASE_URL")
        cfg = Config()
        bind({"db": {"url": "file"}}, cfg, r)
        assert cfg.db.url == "explicit"

    def test_unset_binding_falls_back_to_document(self):
        r = auto_resolver({"DB_URL": "auto"})
        r.bind_env("db.url", "DATABASE_URL")
        cfg = Config()
        bind({"db": {"url": "file"}}, cfg, r)
        assert cfg.db.url == "file"

    def test_empty_bound_variable_still_wins(self):
        r = EnvResolver(environ={"DATABASE_URL": ""})
        r.bind_env("db.url", "DATABASE_URL")
        cfg = Config()
        bind({"db": {"url": "file"}}, cfg, r)
        assert cfg.db.url == ""

    def test_empty_automatic_variable_is_ignored(self):
        cfg = Config()
        bind({"db": {"url": "file"}}, cfg, auto_resolver({"DB_URL": ""}))
        assert cfg.db.url == "file"

    def test_env_without_automatic_switch_is_ignored(self, resolver):
        r = EnvResolver(environ={"HTTP_PORT": "9091"})
        cfg = Config()
        bind({"http": {"port": 8080}}, cfg, r)
        assert cfg.http.port == 8080


# ---------------------------------------------------------------------------
# Keys and recursion
# ---------------------------------------------------------------------------


class TestKeys:

    @pytest.mark.parametrize("key", ["baseurl", "baseUrl", "baseURL"])
    def test_case_insensitive_document_keys(self, resolver, key):
        cfg = Config()
        bind(normalize_keys({"API": {key: "https://api"}}), cfg, resolver)
        assert cfg.api.baseurl == "https://api"

    def test_explicit_key_annotation(self, resolver):
        target = Renamed()
        bind(normalize_keys({"BaseUrl": "https://x"}), target, resolver)
        assert target.base_url == "https://x"

    def test_explicit_key_annotation_drives_env_path(self):
        target = Renamed()
        bind({}, target, auto_resolver({"BASEURL": "https://env"}))
        assert target.base_url == "https://env"

    def test_deep_env_binding_without_document_section(self):
        r = EnvResolver(environ={"MY_API_KEY": "secret"})
        r.bind_env("api.apikey", "MY_API_KEY")
        cfg = Config()
        bind({}, cfg, r)
        assert cfg.api.apikey == "secret"

    def test_missing_nested_instance_is_created(self):
        r = EnvResolver(environ={"MY_API_KEY": "secret"})
        r.bind_env("api.apikey", "MY_API_KEY")
        target = Lazy()
        bind({}, target, r)
        assert isinstance(target.api, ApiConfig)
        assert target.api.apikey == "secret"

    def test_existing_nested_instance_is_reused(self, resolver):
        cfg = Config()
        api = cfg.api
        bind({"api": {"apikey": "k"}}, cfg, resolver)
        assert cfg.api is api

    def test_non_mapping_section_is_skipped(self, resolver):
        cfg = Config()
        bind({"db": "postgres://flat", "log": ["debug"]}, cfg, resolver)
        assert cfg.db.url == ""
        assert cfg.log.level == ""

    def test_null_section_still_takes_env_bindings(self):
        """An empty section (`api:` parses to None) descends like a missing one."""
        r = EnvResolver(environ={"MY_API_KEY": "secret"})
        r.bind_env("api.apikey", "MY_API_KEY")
        cfg = Config()
        bind({"api": None, "log": None}, cfg, r)
        assert cfg.api.apikey == "secret"
        assert cfg.log.level == ""

    def test_null_section_creates_missing_nested_instance(self):
        r = EnvResolver(environ={"MY_API_KEY": "secret"})
        r.bind_env("api.apikey", "MY_API_KEY")
        target = Lazy()
        bind({"api": None}, target, r)
        assert target.api.apikey == "secret"

    def test_unknown_keys_ignored(self, resolver):
        cfg = Config()
        bind({"extra": 1, "http": {"port": 1, "other": True}}, cfg, resolver)
        assert cfg.http.port == 1

    def test_private_and_unsupported_fields_skipped(self):
        target = Scalars()
        r = auto_resolver({"_SECRET": "leak", "RATIO": "2"})
        bind({"_secret": "x", "ratio": 1.5}, target, r)
        assert target._secret == "hidden"
        assert target.ratio == 0.5


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


class TestValues:

    def test_document_number_into_uint(self, resolver):
        cfg = Config()
        bind({"http": {"port": 8080}}, cfg, resolver)
        assert cfg.http.port == 8080

    def test_document_float_truncates(self, resolver):
        target = Scalars()
        bind({"count": -3.9, "size": 4.7}, target, resolver)
        assert target.count == -3
        assert target.size == 4

    def test_document_negative_into_uint_is_skipped(self, resolver):
        target = Scalars()
        bind({"size": -1}, target, resolver)
        assert target.size == 7

    def test_document_number_too_large_is_skipped(self, resolver):
        target = Scalars()
        bind({"count": 2 ** 63, "size": 2 ** 64}, target, resolver)
        assert target.count == -1
        assert target.size == 7

    def test_document_type_mismatch_is_skipped(self, resolver):
        target = Scalars()
        bind({"name": 5, "count": "12", "enabled": "true"}, target, resolver)
        assert target.name == "default"
        assert target.count == -1
        assert target.enabled is False

    def test_document_null_leaves_default(self, resolver):
        target = Scalars()
        bind({"name": None, "count": None}, target, resolver)
        assert target.name == "default"
        assert target.count == -1

    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("yes", False), ("TRUE", False)])
    def test_env_bool(self, raw, expected):
        target = Scalars(enabled=not expected)
        bind({}, target, auto_resolver({"ENABLED": raw}))
        assert target.enabled is expected

    def test_env_signed_int(self):
        target = Scalars()
        bind({"count": 1}, target, auto_resolver({"COUNT": "-42"}))
        assert target.count == -42

    def test_env_bad_number_raises(self):
        cfg = Config()
        with pytest.raises(CoercionError, match="invalid syntax") as exc_info:
            bind({"http": {"port": 8080}}, cfg, auto_resolver({"HTTP_PORT": "not-a-number"}))
        assert exc_info.value.key == "http.port"
        assert exc_info.value.env_var == "HTTP_PORT"

    def test_env_negative_into_uint_raises(self):
        target = Scalars()
        with pytest.raises(CoercionError):
            bind({}, target, auto_resolver({"SIZE": "-1"}))

    def test_failure_does_not_roll_back(self):
        target = Scalars()
        with pytest.raises(CoercionError):
            bind({"name": "set-first"}, target, auto_resolver({"COUNT": "x"}))
        assert target.name == "set-first"

    def test_sequence_from_document(self, resolver):
        cfg = Config()
        bind({"app": {"allowed_origins": ["https://a", "https://b"]}}, cfg, resolver)
        assert cfg.app.allowed_origins == ["https://a", "https://b"]

    def test_sequence_items_that_do_not_fit_become_zero(self, resolver):
        cfg = Config()
        bind({"app": {"retries": [1, "two", 3.5], "ports": [80, -1], "flags": [True, "x"]}}, cfg, resolver)
        assert cfg.app.retries == [1, 0, 3]
        assert cfg.app.ports == [80, 0]
        assert cfg.app.flags == [True, False]

    def test_sequence_from_env(self):
        cfg = Config()
        bind({}, cfg, auto_resolver({"APP_RETRIES": "1, 2,,3"}))
        assert cfg.app.retries == [1, 2, 3]


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class TestTargets:

    @pytest.mark.parametrize("target", [None, Config, {"a": 1}, "text"])
    def test_invalid_targets(self, resolver, target):
        with pytest.raises(InvalidTarget):
            bind({}, target, resolver)

    def test_frozen_target(self, resolver):
        with pytest.raises(InvalidTarget, match="frozen"):
            bind({"name": "x"}, Frozen(), resolver)

    def test_nested_type_without_defaults(self, resolver):
        with pytest.raises(InvalidTarget, match="Required"):
            bind({}, NeedsRequired(), resolver)

    def test_provenance_records_sources(self):
        store = ProvenanceStore()
        r = auto_resolver({"HTTP_PORT": "9091"})
        cfg = Config()
        bind({"http": {"port": 8080}, "db": {"url": "u"}}, cfg, r, provenance=store, file_path="app.yaml")
        assert store.get("http.port").source == "env:HTTP_PORT"
        assert store.get("http.port").value == 9091
        assert store.get("db.url").source == "file:app.yaml"
        assert store.env_overrides() == {"http.port": "HTTP_PORT"}
        assert store.get("db.schema") is None

    def test_unresolvable_annotation(self, resolver):
        with pytest.raises(InvalidTarget, match="cannot resolve field types of Unresolvable"):
            bind({}, Unresolvable(), resolver)
