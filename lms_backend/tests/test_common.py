"""
Tests for configuration loading, structured logging and error rendering.
"""

import json
import logging
import unittest

import pytest

from lms_backend.assessments.services import create_memory_services
from lms_backend.common.error_handling import status_for
from lms_backend.common.exceptions import (
    AlreadySubmittedError,
    ConfigurationError,
    DatabaseError,
    MissingRequiredAnswerError,
    NotFoundError,
)
from lms_backend.common.logger import (
    APP_LOGGER_NAME,
    JsonFormatter,
    LoggerAdapter,
    configure_logger,
    log_execution_time,
)
from lms_backend.config import Settings, load_settings
from lms_backend.main import create_app


class TestErrors(unittest.TestCase):
    def test_status_codes(self):
        self.assertEqual(status_for(MissingRequiredAnswerError("q1")), 400)
        self.assertEqual(status_for(NotFoundError("attempt", "att_1")), 404)
        self.assertEqual(status_for(AlreadySubmittedError("att_1")), 409)
        self.assertEqual(status_for(DatabaseError("boom")), 500)

    def test_error_body(self):
        body = MissingRequiredAnswerError("q2").to_dict()
        self.assertEqual(body["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(body["error"]["details"], {"question_id": "q2"})


class TestLogging(unittest.TestCase):
    def test_adapter_context_reaches_json_output(self):
        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = logging.getLogger("lms.tests.adapter")
        logger.addHandler(Collect())
        logger.setLevel(logging.INFO)

        adapter = LoggerAdapter(logger, {"attempt_id": "att_1"}).with_context(course_id="course-1")
        adapter.info("graded")

        output = json.loads(JsonFormatter().format(records[0]))
        self.assertEqual(output["message"], "graded")
        self.assertEqual(output["attempt_id"], "att_1")
        self.assertEqual(output["course_id"], "course-1")


def test_settings_helpers():
    settings = Settings(ADMIN_USER_IDS="admin-1, admin-2", ALLOW_ORIGINS="http://a, http://b")
    assert settings.admin_user_ids == {"admin-1", "admin-2"}
    assert settings.allowed_origins == ["http://a", "http://b"]


def test_settings_reject_bad_values():
    with pytest.raises(ValueError):
        Settings(LOG_LEVEL="LOUD")
    with pytest.raises(ValueError):
        Settings(START_ATTEMPT_MAX_RETRIES=0)


def test_yaml_overlay(tmp_path, monkeypatch):
    monkeypatch.delenv("START_ATTEMPT_MAX_RETRIES", raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text("START_ATTEMPT_MAX_RETRIES: 7\nPROJECT_NAME: Academy\n")

    settings = load_settings(str(path))
    assert settings.START_ATTEMPT_MAX_RETRIES == 7
    assert settings.PROJECT_NAME == "Academy"


def test_environment_beats_overlay(tmp_path, monkeypatch):
    monkeypatch.setenv("PROJECT_NAME", "From Env")
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"PROJECT_NAME": "From File"}))

    assert load_settings(str(path)).PROJECT_NAME == "From Env"


def test_unreadable_overlay(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        load_settings(str(path))

    path = tmp_path / "settings.toml"
    path.write_text("x = 1")
    with pytest.raises(ConfigurationError):
        load_settings(str(path))


def test_create_app_configures_logging_from_settings():
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    try:
        create_app(Settings(LOG_LEVEL="DEBUG"), services=create_memory_services())
        assert app_logger.level == logging.DEBUG
    finally:
        configure_logger(name=APP_LOGGER_NAME, level="INFO")
    assert app_logger.level == logging.INFO


@pytest.mark.asyncio
async def test_expected_errors_are_not_logged_as_errors(caplog):
    logger = logging.getLogger("lms.tests.timing")

    @log_execution_time(logger, expected_errors=(AlreadySubmittedError,))
    async def submit_twice():
        raise AlreadySubmittedError("att_1")

    @log_execution_time(logger, expected_errors=(AlreadySubmittedError,))
    async def broken():
        raise RuntimeError("disk full")

    with caplog.at_level(logging.DEBUG, logger="lms.tests.timing"):
        with pytest.raises(AlreadySubmittedError):
            await submit_twice()
        with pytest.raises(RuntimeError):
            await broken()

    levels = {record.getMessage().split()[0].rsplit(".", 1)[-1]: record.levelno for record in caplog.records}
    assert levels["submit_twice"] == logging.INFO
    assert levels["broken"] == logging.ERROR
