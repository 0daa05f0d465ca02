"""Tests for the archive source factory."""

from unittest.mock import patch

from wxdash.archive.factory import create_archive_source
from wxdash.archive.sql_source import SQLArchiveSource
from wxdash.config import parse_config


class TestFactory:
    """Tests for create_archive_source."""

    def test_uses_explicit_url(self, tmp_path):
        config = parse_config({"db": {"url": f"sqlite:///{tmp_path / 'weewx.sdb'}"}})
        source = create_archive_source(config)
        try:
            assert isinstance(source, SQLArchiveSource)
            assert source.engine.url.get_backend_name() == "sqlite"
        finally:
            source.close()

    def test_builds_mysql_url_from_parts(self):
        config = parse_config({"db": {"user": "weewx", "password": "secret", "host": "db", "name": "weather"}})

        with patch("wxdash.archive.factory.SQLArchiveSource.from_url") as from_url:
            create_archive_source(config)

        from_url.assert_called_once_with("mysql+pymysql://weewx:secret@db:3306/weather")
