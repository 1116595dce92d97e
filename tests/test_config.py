import logging

import pytest
from pydantic import ValidationError

from stacks.config import NovellaSettings, load_settings, log_level


class FakeNode:
    def __init__(self, context):
        self._context = context

    def try_get_context(self, key):
        return self._context.get(key)


def test_defaults_match_original_shape():
    s = NovellaSettings()
    assert (s.cpu, s.memory) == (512, 128)
    assert s.namespace_name == "novella.local"
    assert s.image_tag is None
    assert s.max_azs == 2


def test_database_url_has_no_password():
    s = NovellaSettings()
    assert s.database_url == "postgresql://postgres@main-db:5432/postgres"


def test_context_values_are_coerced():
    s = load_settings(FakeNode({"cpu": "1024", "memory": "2048"}), environ={})
    assert s.cpu == 1024
    assert s.memory == 2048


def test_environment_overrides_context():
    s = load_settings(
        FakeNode({"cpu": 1024, "image_tag": "v1"}),
        environ={"NOVELLA_CPU": "2048", "UNRELATED": "x"},
    )
    assert s.cpu == 2048
    assert s.image_tag == "v1"


def test_environment_only():
    s = load_settings(None, environ={"NOVELLA_IMAGE_TAG": "v7"})
    assert s.image_tag == "v7"


def test_blank_image_tag_means_build_asset():
    assert NovellaSettings(image_tag="  ").image_tag is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"cpu": 500},
        {"database_cpu": 128},
        {"memory": 0},
        {"max_azs": 1},
        {"health_check_path": "healthz"},
        {"log_retention_days": 13},
        {"healthy_threshold": 1},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        NovellaSettings(**overrides)


def test_log_level_from_environment():
    assert log_level({"NOVELLA_LOG_LEVEL": "debug"}) == logging.DEBUG
    assert log_level({}) == logging.INFO


def test_unknown_log_level_falls_back_to_info():
    assert log_level({"NOVELLA_LOG_LEVEL": "verbose"}) == logging.INFO
