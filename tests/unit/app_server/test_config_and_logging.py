"""Tests for server configuration, the session injector and logging setup."""

import json
import logging
import sys

import pytest
from pydantic import SecretStr

from flowforge.app_server.config import (
    AppServerConfig,
    get_global_config,
    get_user_id,
    set_global_config,
)
from flowforge.app_server.services.db_session_injector import DbSessionInjector
from flowforge.core.errors import AuthenticationRequired
from flowforge.core.logger import (
    JSONFormatter,
    UserContextFilter,
    set_user_id,
    setup_logging,
    user_id_var,
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in (
        'FF_DB_HOST',
        'FF_DB_PORT',
        'FF_DB_PASSWORD',
        'FF_RUN_MIGRATIONS',
        'LOG_LEVEL',
        'LOG_JSON',
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('FF_PERSISTENCE_DIR', str(tmp_path / 'data'))
    yield tmp_path
    set_global_config(None)


class TestConfig:
    def test_defaults_from_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv('FF_RUN_MIGRATIONS', 'false')
        monkeypatch.setenv('LOG_LEVEL', 'DEBUG')

        config = AppServerConfig()

        assert config.persistence_dir == clean_env / 'data'
        assert config.persistence_dir.is_dir()
        assert config.run_migrations is False
        assert config.log_level == 'DEBUG'
        assert config.db_session.host is None

    def test_global_config_is_shared(self, clean_env):
        assert get_global_config() is get_global_config()

        replacement = AppServerConfig(run_migrations=False)
        set_global_config(replacement)
        assert get_global_config() is replacement


class TestDbSessionInjector:
    def test_sqlite_url_without_host(self, clean_env):
        injector = DbSessionInjector(persistence_dir=clean_env)

        assert injector.get_url() == (
            f'sqlite+aiosqlite:///{clean_env / "flowforge.db"}'
        )

    def test_postgres_url_with_host(self, clean_env, monkeypatch):
        monkeypatch.setenv('FF_DB_HOST', 'db.internal')
        monkeypatch.setenv('FF_DB_PORT', '6543')

        injector = DbSessionInjector(
            persistence_dir=clean_env, password=SecretStr('s3cret')
        )
        url = injector.get_url()

        assert url.drivername == 'postgresql+asyncpg'
        assert (url.host, url.port, url.database) == ('db.internal', 6543, 'flowforge')
        assert url.password == 's3cret'
        assert 's3cret' not in injector._describe()

    @pytest.mark.asyncio
    async def test_depends_yields_a_working_session(self, clean_env):
        injector = DbSessionInjector(persistence_dir=clean_env)

        async for session in injector.depends():
            assert session.bind is injector.get_async_engine()
        await injector.dispose()

        assert injector._engine is None


class TestCallerId:
    @pytest.mark.asyncio
    async def test_missing_header_requires_authentication(self):
        with pytest.raises(AuthenticationRequired):
            await get_user_id(None)

    @pytest.mark.asyncio
    async def test_header_sets_log_context(self):
        assert await get_user_id(42) == 42
        assert user_id_var.get() == '42'


class TestLogging:
    def _record(self, message='Project %s completed', args=(7,)):
        return logging.LogRecord(
            'flowforge.test', logging.INFO, __file__, 1, message, args, None
        )

    def test_json_formatter(self):
        set_user_id(3)
        record = self._record()
        UserContextFilter().filter(record)
        record.project_id = 7

        data = json.loads(JSONFormatter().format(record))

        assert data['message'] == 'Project 7 completed'
        assert data['level'] == 'INFO'
        assert data['logger'] == 'flowforge.test'
        assert data['user_id'] == '3'
        assert data['project_id'] == 7

    def test_json_formatter_includes_exceptions(self):
        try:
            raise ValueError('boom')
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            'flowforge.test', logging.ERROR, __file__, 1, 'failed', (), exc_info
        )

        data = json.loads(JSONFormatter().format(record))

        assert data['exception']['type'] == 'ValueError'
        assert data['exception']['message'] == 'boom'

    def test_setup_logging_replaces_the_handler(self, clean_env):
        logger = setup_logging('debug', json_output=True)
        logger = setup_logging('warning', json_output=False)

        assert logger.name == 'flowforge'
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
