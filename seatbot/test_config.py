import pytest
from pydantic import ValidationError
from config import SessionConfig, gemini_key_missing, session_config_from_env


def _config(**kw):
    values = dict(url="https://tkglobal.melon.com/performance/index.htm?prodId=211217",
                  prod_id="211217", target_date="May 24", seat_keywords=["207", "407", "311"])
    values.update(kw)
    return SessionConfig(**values)


def test_primary_and_fallback_pool():
    config = _config()
    assert config.primary_keyword == "207"
    assert config.fallback_pool == ("407", "311")
    assert config.lang_cd == "EN"


def test_config_is_immutable():
    config = _config()
    with pytest.raises(ValidationError):
        config.target_date = "May 25"


def test_empty_keywords_rejected():
    with pytest.raises(ValidationError):
        _config(seat_keywords=[])
    with pytest.raises(ValidationError):
        _config(seat_keywords=[""])


def test_env_config_with_overrides():
    config = session_config_from_env(target_date="June 1", seat_keywords=("A1",), lang_cd=None)
    assert config.target_date == "June 1"
    assert config.seat_keywords == ("A1",)
    assert config.fallback_pool == ()


@pytest.mark.parametrize("engine,key,missing", [
    ("gemini", None, True),
    ("gemini", "", True),
    ("gemini", "abc123", False),
    ("tesseract", None, False),
])
def test_gemini_key_missing(engine, key, missing):
    assert gemini_key_missing(engine, key) is missing
