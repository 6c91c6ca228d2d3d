"""
Unit tests for the command-line interface
"""
from unittest.mock import MagicMock, patch

import pytest

from shop_insights.cli import create_parser, main


class TestParser:
    """Test argument parsing"""

    def test_resync_requires_shop_domain(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["resync"])

    def test_serve_options(self):
        args = create_parser().parse_args(["serve", "--port", "9000", "--reload"])
        assert args.port == 9000
        assert args.reload is True


class TestCommands:
    """Test command handlers"""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_generate_key(self, capsys):
        assert main(["generate-key"]) == 0
        assert len(capsys.readouterr().out.strip()) == 44

    def test_config_validate(self, capsys):
        assert main(["config", "validate"]) == 0
        assert "Configuration is valid" in capsys.readouterr().out

    def test_init_db(self, engine, capsys):
        with patch("shop_insights.database.connection.init_db") as init_db:
            assert main(["init-db"]) == 0
        init_db.assert_called_once()

    def test_resync_unknown_shop(self, db_session, capsys):
        assert main(["resync", "--shop-domain", "nobody.myshopify.com"]) == 1
        assert "No active tenant" in capsys.readouterr().out

    def test_resync_runs_ingestion(self, db_session, test_tenant, capsys):
        service = MagicMock()
        service.ingest_all.return_value = {"customers": 0, "orders": 0, "products": 0}

        with patch("shop_insights.services.ingestion_service.IngestionService", return_value=service):
            assert main(["resync", "--shop-domain", "demo.myshopify.com"]) == 0

        service.ingest_all.assert_called_once_with(trigger="cli")
        service.close.assert_called_once()
