import pytest
from pydantic import ValidationError

from talentflow.config import Settings


def test_defaults() -> None:
    settings = Settings(app_env="test")
    assert settings.specialist_precondition_policy == "warn"
    assert settings.company_follow_up_days == 45
    assert settings.transition_max_retries == 0


def test_invalid_precondition_policy_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(specialist_precondition_policy="ignore")


def test_negative_retry_budget_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(transition_max_retries=-1)


def test_cors_origin_list() -> None:
    settings = Settings(cors_origins="http://a.test, http://b.test,")
    assert settings.cors_origin_list == ["http://a.test", "http://b.test"]
