from config.settings import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.LLM_CONFIG_PATH == "app_config.json"
    assert settings.MINUTES_PER_QUESTION == 3
    assert settings.MAX_QUESTION_COUNT == 15
    assert settings.STRENGTH_SCORE == 70
    assert settings.WEAK_QUESTION_SCORE == 50
    assert settings.RECOMMENDATION_THRESHOLD == 75
    assert settings.NEUTRAL_SCORE == 50
    assert settings.EMAIL_API_URL is None


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MINUTES_PER_QUESTION", "4")
    monkeypatch.setenv("AUTH_ALGORITHMS", '["HS256", "HS512"]')
    settings = Settings(_env_file=None)
    assert settings.MINUTES_PER_QUESTION == 4
    assert settings.AUTH_ALGORITHMS == ["HS256", "HS512"]
