import logging

from shared.utils import Cache, config, generate_bytes_hash, generate_hash, setup_logging


def test_config_env_loading() -> None:
    # Keys should resolve even when not explicitly configured
    assert config.get("openai_api_key") in (None, "") or isinstance(config.get("openai_api_key"), str)
    assert isinstance(config.get("transcript_char_budget"), int)
    allowed_origins = config.get("allowed_origins")
    assert isinstance(allowed_origins, list)


def test_pipeline_value_lookup_and_env_override(monkeypatch) -> None:
    config.set_pipeline_config({"pipelines": {"slide_analysis": {"batch_size": 4}}})
    assert config.get_pipeline_value("pipelines.slide_analysis.batch_size", 3) == 4
    assert config.get_pipeline_value("pipelines.slide_analysis.missing", "fallback") == "fallback"

    monkeypatch.setenv("PIPELINE_FLAG_PIPELINES_SLIDE_ANALYSIS_USE_CACHE", "false")
    assert config.get_pipeline_value("pipelines.slide_analysis.use_cache", True) is False


def test_generate_hash() -> None:
    h = generate_hash("hello world")
    assert isinstance(h, str)
    assert len(h) == 32
    assert generate_bytes_hash(b"hello world") == h


def test_cache_expiry_and_delete() -> None:
    cache = Cache()
    cache.set("fresh", "value", ttl=60)
    cache.set("stale", "value", ttl=-1)

    assert cache.get("fresh") == "value"
    assert cache.get("stale") is None
    assert cache.size() == 1

    cache.delete("fresh")
    assert cache.get("fresh") is None


def test_setup_logging_reuses_handler() -> None:
    first = setup_logging("utils-test", "debug")
    second = setup_logging("utils-test")

    assert first is second
    assert len(first.handlers) == 1
    assert isinstance(first.handlers[0], logging.StreamHandler)
